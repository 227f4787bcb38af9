import asyncio
import sys
from argparse import ArgumentParser

from dotenv import load_dotenv

from storenode.errors import ServiceInitError
from storenode.service.init_service import init_service
from storenode.utils.config import Settings
from storenode.utils.custom_logger import get_logger

logger = get_logger(__name__)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="storenode", description="Storage node tooling")
    commands = parser.add_subparsers(dest="command", required=True)

    init = commands.add_parser("init", help="Initialize a storage node repo")
    init_commands = init.add_subparsers(dest="init_command", required=True)

    service = init_commands.add_parser("service", help="Initialize a storage node sub-service")
    service.add_argument("--config", required=True, help="config file (config.toml)")
    service.add_argument("--storage-config", required=True, help="storage paths config (storage.json)")
    service.add_argument("--nosync", action="store_true", help="don't check full-node sync status")

    # Modules
    service.add_argument("--enable-market", action="store_true", help="enable market module")

    # Remote APIs
    service.add_argument("--api-sealer", type=str, help="sealer API info (auth api-info --perm=admin)")
    service.add_argument("--api-sector-index", type=str, help="sector Index API info (auth api-info --perm=admin)")

    service.add_argument("backup_file", nargs="?", metavar="backupFile", help="node metadata backup")
    return parser


def main(argv=None) -> int:
    """Main entry point for storenode."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = Settings()

    try:
        asyncio.run(init_service(args, settings))
    except ServiceInitError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted, nothing was written")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
