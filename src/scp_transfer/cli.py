"""Command-line interface for scp-transfer."""

from __future__ import annotations

import argparse
from typing import Optional

from .config import (
    AppConfig,
    TransferConfig,
    build_transfer_config,
    default_remote_path,
    require_local_file,
)
from .errors import ConfigurationError, ScpTransferError
from .interaction import (
    CLIInteractionHandler,
    InteractionRequest,
    UserInteractionHandler,
    prompt_value,
)
from .utils.logging import configure_logging, get_logger
from .workflow import TransferWorkflow

logger = get_logger(__name__)

BANNER_RULE = "====================================="


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scp-transfer",
        description="Copy a local file to a remote host over SSH, prompting for anything missing.",
    )
    parser.add_argument(
        "local_file", nargs="?", default=None,
        help="Local file to upload (prompted for when omitted)",
    )
    parser.add_argument("--host", default=None, help="Remote host, e.g. example.com or 192.168.1.100")
    parser.add_argument("--port", default=None, help="SSH port (default: 22)")
    parser.add_argument("--user", default=None, help="Remote username")
    parser.add_argument(
        "--remote-path", default=None,
        help="Destination path (default: /home/<user>/<file name>)",
    )
    parser.add_argument(
        "--timeout", type=int, default=None,
        help="Connection timeout in seconds (default: 20)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging",
    )
    return parser


def _build_app_config(args: argparse.Namespace) -> AppConfig:
    return AppConfig.from_dict(
        {
            "transfer": {"connect_timeout": args.timeout},
            "verbose": args.verbose,
        }
    )


def _ask(handler: UserInteractionHandler, question: str, allow_empty: bool = False) -> str:
    return prompt_value(handler, InteractionRequest(question=question, allow_empty=allow_empty))


def collect_transfer_config(
    handler: UserInteractionHandler,
    args: argparse.Namespace,
) -> TransferConfig:
    """Prompt for every value not supplied on the command line."""
    # 先检查本地文件，避免用户填完所有信息后才报错
    local_file = require_local_file(args.local_file or _ask(handler, "📁 Local file path"))

    remote_host = args.host or _ask(handler, "🌐 Remote host (e.g., example.com or 192.168.1.100)")

    port = args.port
    if port is None:
        port = _ask(handler, "🔌 Port (optional, press Enter for default 22)", allow_empty=True)

    username = args.user or _ask(handler, "👤 Username")

    remote_path = args.remote_path
    if remote_path is None:
        suggested = default_remote_path(username.strip(), local_file.strip())
        remote_path = _ask(
            handler,
            f"📂 Remote path (optional, press Enter for default: {suggested})",
            allow_empty=True,
        )

    return build_transfer_config(
        local_file,
        remote_host,
        username,
        port=port,
        remote_path=remote_path,
        warn=lambda message: handler.notify(f"❌ {message}", "warning"),
    )


def dispatch_command(
    args: argparse.Namespace,
    handler: Optional[UserInteractionHandler] = None,
    workflow: Optional[TransferWorkflow] = None,
) -> int:
    config = _build_app_config(args)
    configure_logging(config.verbose)
    handler = handler or CLIInteractionHandler()

    handler.notify(BANNER_RULE, "title")
    handler.notify("🔐 Interactive SCP File Transfer Tool", "title")
    handler.notify(BANNER_RULE, "title")

    try:
        request = collect_transfer_config(handler, args)
        workflow = workflow or TransferWorkflow(config, handler)
        workflow.run(request)
    except ConfigurationError as exc:
        handler.notify(f"❌ {exc}", "error")
        return 1
    except ScpTransferError as exc:
        logger.debug("Transfer failed", exc_info=True)
        handler.notify("\n❌ Transfer failed:", "error")
        handler.notify(str(exc), "error")
        return 1
    except KeyboardInterrupt:
        handler.notify("\n(cancelled)", "warning")
        return 130

    handler.notify("\n✅ File transfer completed successfully!", "success")
    return 0


def run_cli(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return dispatch_command(args)
