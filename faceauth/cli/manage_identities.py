"""CLI tool for inspecting and managing enrolled identities."""
import argparse
import sys
from typing import List, Optional

from faceauth.core.container import container
from faceauth.core.exceptions import FaceAuthError
from faceauth.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


def list_identities() -> int:
    """Print enrolled identities, sorted for display."""
    identities = sorted(container.face_auth_service.list_identities())
    for identity in identities:
        print(identity)
    logger.info("Listed identities", count=len(identities))
    return 0


def show_identity(identity: str) -> int:
    """Print the metadata of one enrolled template (never its descriptors)."""
    template = container.template_store.get(identity)
    print(f"identity:      {template.identity}")
    print(f"model_version: {template.model_version}")
    print(f"enrolled_at:   {template.created_at.isoformat()}")
    print(f"sample_count:  {template.sample_count}")
    print(f"descriptors:   {len(template.descriptors)} x {template.dimension}")
    return 0


def delete_identity(identity: str) -> int:
    container.face_auth_service.delete_identity(identity)
    logger.info("Deleted identity", identity=identity)
    return 0


def clear_all(assume_yes: bool) -> int:
    if not assume_yes:
        answer = input("Clear all enrollments? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            logger.info("Clear aborted")
            return 1
    container.face_auth_service.clear_all()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Manage enrolled face templates")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List enrolled identities")

    show = subparsers.add_parser("show", help="Show template metadata for an identity")
    show.add_argument("identity", help="Identity key")

    delete = subparsers.add_parser("delete", help="Delete an enrolled identity")
    delete.add_argument("identity", help="Identity key")

    clear = subparsers.add_parser("clear", help="Delete every enrolled identity")
    clear.add_argument("--yes", action="store_true", help="Don't ask for confirmation")

    args = parser.parse_args(argv)

    setup_logging(stream=sys.stderr)
    container.initialize()
    try:
        if args.command == "list":
            return list_identities()
        if args.command == "show":
            return show_identity(args.identity)
        if args.command == "delete":
            return delete_identity(args.identity)
        return clear_all(args.yes)
    except FaceAuthError as e:
        logger.error("Command failed", command=args.command, **e.to_dict())
        return 2
    finally:
        container.cleanup()


if __name__ == "__main__":
    sys.exit(main())
