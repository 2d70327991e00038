"""Command line entry point for managing feedback items on a board."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import get_config, BoardConfig
from .data_service import ExtensionDataService
from .identity import StaticIdentityResolver, UserIdentity
from .item_data_service import FeedbackItemRepository
from .models import FeedbackItem
from .exceptions import DataServiceError, WorkItemServiceError
from .observability import logger, RecordingTelemetry
from .work_item_service import WorkItemService

DEFAULT_FIXTURE_PATH = Path(__file__).parent.parent.parent / "fixtures" / "board_mock.json"


def build_repository(
    config: Optional[BoardConfig] = None,
    mock_data_path: Optional[str] = None,
) -> FeedbackItemRepository:
    """
    Wire a repository with its collaborators.

    Args:
        config: Optional config override (defaults to the environment)
        mock_data_path: Fixture file; when given every collaborator is mocked
    """
    config = config or get_config()

    if mock_data_path:
        logger.info(f"Using mock services with fixtures: {mock_data_path}")
        identity = UserIdentity(
            id=config.user_id or "mock-user",
            display_name=config.user_display_name or "Mock User",
            unique_name=config.user_unique_name,
        )
        return FeedbackItemRepository(
            store=ExtensionDataService(mock_data_path=mock_data_path),
            identity_resolver=StaticIdentityResolver(identity),
            work_item_service=WorkItemService(mock_data_path=mock_data_path),
            telemetry=RecordingTelemetry(),
        )

    return FeedbackItemRepository(
        store=ExtensionDataService(config=config),
        identity_resolver=StaticIdentityResolver.from_config(config),
        work_item_service=WorkItemService(config=config),
    )


def _to_json(value) -> object:
    """Convert repository results to JSON-friendly structures."""
    if value is None:
        return None
    if isinstance(value, FeedbackItem):
        return value.to_document()
    if isinstance(value, list):
        return [_to_json(v) for v in value]
    if hasattr(value, "__dataclass_fields__"):
        return {name: _to_json(getattr(value, name)) for name in value.__dataclass_fields__}
    return value


async def run_command(repository: FeedbackItemRepository, args: argparse.Namespace):
    """Dispatch a parsed command to the repository."""
    board = args.board
    command = args.command

    if command == "list":
        if args.ids:
            return await repository.get_feedback_items_by_ids(board, args.ids)
        return await repository.get_feedback_items_for_board(board)
    if command == "show":
        return await repository.get_feedback_item(board, args.item)
    if command == "create":
        return await repository.create_item_for_board(
            board, args.title, args.column, is_anonymous=not args.named
        )
    if command == "delete":
        return await repository.delete_feedback_item(board, args.item)
    if command == "upvote":
        return await repository.increment_upvote(board, args.item)
    if command == "rename":
        return await repository.update_title(board, args.item, args.title)
    if command == "group":
        return await repository.add_feedback_item_as_child(board, args.parent, args.child)
    if command == "move":
        return await repository.add_feedback_item_as_main_item_to_column(board, args.item, args.column)
    if command == "link":
        return await repository.add_associated_action_item(board, args.item, args.work_item)
    if command == "unlink":
        return await repository.remove_associated_action_item(board, args.item, args.work_item)
    if command == "links":
        return await repository.get_associated_action_item_ids(board, args.item)
    if command == "reconcile":
        return await repository.remove_associated_item_if_not_exists_in_tracker(
            board, args.item, args.work_item
        )
    raise ValueError(f"Unknown command: {command}")


async def _run(repository: FeedbackItemRepository, args: argparse.Namespace):
    try:
        return await run_command(repository, args)
    finally:
        await repository.store.close()
        await repository.work_item_service.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Manage feedback items on a retrospective board"
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use mock services with fixture data"
    )
    parser.add_argument(
        "--fixtures",
        default=str(DEFAULT_FIXTURE_PATH),
        help="Fixture file used with --mock"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add(name: str, help_text: str, *arguments: tuple):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("board", help="Board id")
        for names, kwargs in arguments:
            sub.add_argument(*names, **kwargs)
        return sub

    item = (("item",), {"help": "Feedback item id"})
    work_item = (("work_item",), {"type": int, "help": "Work item id"})

    add("list", "List feedback items of a board",
        (("ids",), {"nargs": "*", "help": "Only these item ids"}))
    add("show", "Show a feedback item", item)
    add("create", "Create a feedback item",
        (("column",), {"help": "Column id"}),
        (("title",), {"help": "Item title"}),
        (("--named",), {"action": "store_true", "help": "Record the creator instead of posting anonymously"}))
    add("delete", "Delete a feedback item", item)
    add("upvote", "Upvote a feedback item", item)
    add("rename", "Change the title of a feedback item", item,
        (("title",), {"help": "New title"}))
    add("group", "Add an item as a child of another item",
        (("parent",), {"help": "Parent item id"}),
        (("child",), {"help": "Child item id"}))
    add("move", "Move an item to a column as a main item", item,
        (("column",), {"help": "Target column id"}))
    add("link", "Link a work item to a feedback item", item, work_item)
    add("unlink", "Unlink a work item from a feedback item", item, work_item)
    add("links", "Show work items linked to a feedback item", item)
    add("reconcile", "Unlink a work item if the tracker no longer has it", item, work_item)

    return parser


def cli(argv: Optional[list[str]] = None):
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.debug:
        logging.getLogger("retro_board").setLevel(logging.DEBUG)

    repository = build_repository(mock_data_path=args.fixtures if args.mock else None)

    try:
        result = asyncio.run(_run(repository, args))
    except (DataServiceError, WorkItemServiceError) as e:
        print(f"❌ {e}")
        sys.exit(1)

    if result is None:
        print("Nothing changed.")
        return

    print(json.dumps(_to_json(result), indent=2, default=str))


if __name__ == "__main__":
    cli()
