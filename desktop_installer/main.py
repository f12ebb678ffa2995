from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import Callable, List, Optional

from .config import InstallerConfig
from .errors import ProvisioningError
from .lib.command import Runner, run_cmd
from .lib.inspector import HostInspector, SystemInspector
from .lib.manifests import load_manifest
from .lib.pkg import export_package_list
from .logging_utils import configure_logging
from .pipeline import RunContext, Step, ask_yes_no, run_pipeline
from .report_store import save_report
from .steps import (
    ApplyDotfilesStep,
    DetectHardwareStep,
    EnableServicesStep,
    InstallNvidiaStep,
    InstallPackagesStep,
    PrepareSystemStep,
    SummaryStep,
)

logger = logging.getLogger(__name__)


def build_steps() -> List[Step]:
    return [
        DetectHardwareStep(),
        PrepareSystemStep(),
        InstallPackagesStep("core", "30_install_core"),
        InstallNvidiaStep(),
        InstallPackagesStep("desktop", "50_install_desktop"),
        EnableServicesStep(),
        ApplyDotfilesStep(),
        SummaryStep(),
    ]


def _exit_on_signal(signum: int, frame) -> None:
    # SystemExit unwinds the stack so scoped work dirs are removed.
    raise SystemExit(128 + signum)


def install_signal_handlers() -> None:
    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _exit_on_signal)


def run(
    config: InstallerConfig,
    *,
    inspector: Optional[SystemInspector] = None,
    runner: Runner = run_cmd,
    confirm: Callable[[str], bool] = ask_yes_no,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> int:
    """Run the provisioning pipeline. Returns the process exit code."""

    inspector = inspector or HostInspector(root=config.root, runner=runner)

    if not config.assume_yes and not confirm("Install i3?"):
        logger.info("Installation declined")
        return 0

    manifest = load_manifest(config.manifest_path)
    ctx = RunContext.build(config, manifest, inspector, runner=runner, confirm=confirm)

    try:
        run_pipeline(ctx=ctx, steps=build_steps(), start_at=start_at, stop_after=stop_after)
        logger.info("Installation complete")
        return 0
    except ProvisioningError as e:
        logger.error("Installer failed: %s", e)
        ctx.report.extra["error"] = str(e)
        return 1
    finally:
        if config.report_path:
            save_report(config.report_path, ctx.report)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="desktop-installer",
        description="Install and configure an i3 desktop on Arch Linux.",
    )
    p.add_argument("--only-config", action="store_true", help="Only copy config files (skip packages and external tools)")
    p.add_argument("--export-packages", action="store_true", help="Export the installed package list and exit")
    p.add_argument("--skip-nvidia", action="store_true", help="Skip NVIDIA driver installation")
    p.add_argument("-y", "--yes", action="store_true", help="Answer yes to every prompt")
    p.add_argument("--dry-run", action="store_true", help="Log mutating commands instead of running them")
    p.add_argument("--manifest", default=None, help="Package manifest (YAML); defaults to the bundled one")
    p.add_argument("--source", default=None, help="Directory holding dotfile sources (default: cwd)")
    p.add_argument("--log", default=None, help="Log file (default: ~/i3-install.log)")
    p.add_argument("--report", default=None, help="Write a run report (json|yaml)")
    p.add_argument("--export-path", default=None, help="Target of --export-packages (default: ~/package_list_arch.txt)")
    p.add_argument("--root", default="/", help=argparse.SUPPRESS)
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 30_install_core)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    return p.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> InstallerConfig:
    return InstallerConfig(
        only_config=bool(args.only_config),
        skip_nvidia=bool(args.skip_nvidia),
        dry_run=bool(args.dry_run),
        assume_yes=bool(args.yes),
        manifest_path=args.manifest,
        source_dir=args.source,
        root=args.root,
        log_path=args.log,
        report_path=args.report,
        export_path=args.export_path,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = config_from_args(args)

    configure_logging(log_path=config.resolved_log_path)
    install_signal_handlers()

    if args.export_packages:
        export_package_list(HostInspector(root=config.root), config.resolved_export_path)
        return 0

    try:
        return run(config, start_at=args.start_at, stop_after=args.stop_after)
    except (ProvisioningError, ValueError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
