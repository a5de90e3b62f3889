from pathlib import Path

import click

from . import file_utils, logging_config, manifest
from .errors import ContentMismatch, IPSError, SizeMismatch
from .patch_file import PatchFile


def _load_patch(path: str) -> PatchFile:
    try:
        return PatchFile.load(path)
    except (IPSError, OSError) as e:
        raise click.ClickException(f"Cannot read patch {path}: {e}")


def _echo_target(label: str, path) -> None:
    info = file_utils.inspect_target(path)
    click.echo(f"{label}: {info['size']} bytes, CRC32 {info['crc32']:08X}")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Trace every record read, written or applied")
def main(verbose):
    """IPS patch toolkit."""
    logging_config.set_verbose(verbose)


@main.command()
@click.option("--patch", "patch_path", type=click.Path(exists=True, dir_okay=False), required=True, help="Path to IPS patch")
@click.option("--yaml", "as_yaml", is_flag=True, help="Print the patch as a YAML manifest")
def info(patch_path, as_yaml):
    """List the records of an IPS patch."""
    patch = _load_patch(patch_path)
    if as_yaml:
        click.echo(manifest.dump_manifest(patch), nl=False)
        return
    click.echo(f"Records: {len(patch)}")
    for i, record in enumerate(patch):
        if record.is_rle:
            click.echo(f"  {i:4d} @0x{record.address:06X} RLE    count={record.size} fill=0x{record.data[0]:02X}")
        else:
            click.echo(f"  {i:4d} @0x{record.address:06X} DATA   size={record.size}")
    if patch.truncate:
        click.echo(f"Truncate: {patch.truncate} bytes")


@main.command()
@click.option("--patch", "patch_path", type=click.Path(exists=True, dir_okay=False), required=True, help="Path to IPS patch")
@click.option("--target", type=click.Path(exists=True, dir_okay=False), required=True, help="File to patch")
@click.option("--out", type=click.Path(dir_okay=False), default=None, help="Write the patched copy here instead of modifying --target")
@click.option("--skip-if-applied", is_flag=True, help="Do nothing if the target already matches the patch")
def apply(patch_path, target, out, skip_if_applied):
    """Apply an IPS patch to a file."""
    patch = _load_patch(patch_path)
    dest = target
    if out:
        if Path(out).resolve() == Path(target).resolve():
            raise click.BadParameter("--out must differ from --target; omit --out to patch in place", param_hint="--out")
        try:
            dest = str(file_utils.copy_target(target, out))
        except OSError as e:
            raise click.ClickException(f"Cannot copy {target} to {out}: {e}")
    try:
        if skip_if_applied:
            with open(dest, "rb") as f:
                if patch.is_applied(f):
                    click.echo(f"Already applied: {dest}")
                    return
        patch.apply_file(dest)
    except (IPSError, OSError) as e:
        raise click.ClickException(f"Patching {dest} failed: {e}")
    click.echo(f"Applied {len(patch)} records → {dest}")
    _echo_target("Result", dest)


@main.command()
@click.option("--patch", "patch_path", type=click.Path(exists=True, dir_okay=False), required=True, help="Path to IPS patch")
@click.option("--target", type=click.Path(exists=True, dir_okay=False), required=True, help="File to verify")
def check(patch_path, target):
    """Verify that a file already has an IPS patch applied."""
    patch = _load_patch(patch_path)
    try:
        patch.check_file(target)
    except (ContentMismatch, SizeMismatch) as e:
        raise click.ClickException(f"Not applied: {e}")
    except (IPSError, OSError) as e:
        raise click.ClickException(str(e))
    click.echo(f"OK: all {len(patch)} records match {target}")


@main.command()
@click.option("--manifest", "manifest_path", type=click.Path(exists=True, dir_okay=False), required=True, help="YAML manifest describing the records")
@click.option("--out", type=click.Path(dir_okay=False), required=True, help="IPS patch to write")
def build(manifest_path, out):
    """Build an IPS patch from a YAML manifest."""
    try:
        patch = manifest.build_patch(manifest.load_manifest(manifest_path))
        patch.save(out)
    except (ValueError, IPSError, OSError) as e:
        raise click.ClickException(str(e))
    click.echo(f"IPS patch written: {out} ({len(patch)} records)")


if __name__ == "__main__":
    main()
