import json
from pathlib import Path

import click

from .const import ERRORS
from .container import process
from .digest import file_digest
from .errors import VmssError
from .output import fatal
from .patch import NmiConfig

CANONICAL_JSON_KW = {"sort_keys": True, "separators": (",", ":"), "ensure_ascii": False}


class CpuParam(click.ParamType):
    """A non-negative CPU id, or "all"."""

    name = "cpu"

    def convert(self, value, param, ctx):
        if value is None or isinstance(value, int):
            return value
        if value == "all":
            return None
        if not (value.isascii() and value.isdigit()):
            self.fail(f"invalid CPU '{value}'", param, ctx)
        return int(value)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("vmss_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-c", "--cpu", type=CpuParam(), default="0", show_default=True,
              help="Set pendingNMI only on specified CPU ('all' to only display)")
@click.option("-n", "--dry-run", is_flag=True, help="Display but don't alter pendingNMI")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.option("-z", "--zero", is_flag=True, help="Zero out pendingNMI rather than set it")
@click.option("--json", "as_json", is_flag=True, help="Print the run result as JSON")
def main(vmss_file: Path, cpu, dry_run: bool, verbose: bool, zero: bool, as_json: bool) -> None:
    """Post (or clear) a pending NMI in a VMware suspended state file."""
    config = NmiConfig(cpu=cpu, dry_run=dry_run, verbose=verbose, value=0 if zero else 1)
    try:
        before = file_digest(vmss_file) if as_json else None
        result = process(vmss_file, config)
        after = file_digest(vmss_file) if as_json else None
    except VmssError as e:
        # Fail closed, with a single-line reason.
        fatal(str(e))
        if as_json:
            click.echo(json.dumps({"status": "FAIL", "error_count": 1, "errors": [e.as_dict()]}, **CANONICAL_JSON_KW))
        raise SystemExit(1)
    except OSError as e:
        fatal(str(e))
        if as_json:
            err = {"code": "E_IO", "message": ERRORS["E_IO"], "detail": str(e)}
            click.echo(json.dumps({"status": "FAIL", "error_count": 1, "errors": [err]}, **CANONICAL_JSON_KW))
        raise SystemExit(1)

    if as_json:
        result["file"] = {"sha256_before": before, "sha256_after": after}
        click.echo(json.dumps(result, **CANONICAL_JSON_KW))

if __name__ == "__main__":
    main()
