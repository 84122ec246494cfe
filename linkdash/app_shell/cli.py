import argparse
import getpass
import json
import logging
import sys
from pathlib import Path

from linkdash.adapters.identity import admin_oracle_for
from linkdash.app_shell.context import StoreContext
from linkdash.components.store import (
    DeleteLinkInput,
    DuplicateLinkInput,
    FilterInput,
    ImportLinksInput,
    LayeredLinkStore,
    MoveLinkInput,
    StoreError,
    StoreOperationOutput,
    UpdateLinkInput,
    UpsertLinkInput,
    run_create,
    run_delete,
    run_duplicate,
    run_export,
    run_import,
    run_list,
    run_move,
    run_save_order,
    run_update,
)
from linkdash.domain.entities import Link
from linkdash.rules.loader import load_rules

logger = logging.getLogger("cli")

RULES_PATH = "rules.yaml"


def get_store(args: argparse.Namespace) -> LayeredLinkStore:
    rules_path = Path(args.rules)
    if not rules_path.exists():
        logger.error(f"Rules file {rules_path} not found.")
        sys.exit(1)

    rules = load_rules(rules_path)
    logging.basicConfig(level=rules.logging.level.upper())
    oracle = admin_oracle_for(args.user, rules.identity.admins, force_admin=args.admin)
    return StoreContext.create(rules).open_store(oracle)


def _print_errors(errors: list[StoreError]) -> None:
    for err in errors:
        print(f"Error: {err.message}", file=sys.stderr)


def _report(result: StoreOperationOutput, verb: str) -> int:
    if result.refused:
        print("Not allowed.", file=sys.stderr)
        return 1
    if result.errors:
        _print_errors(result.errors)
        return 1
    for warning in result.warnings:
        print(f"Warning: {warning.message}", file=sys.stderr)
    assert result.link is not None
    print(f"{verb} {result.link.id} {result.link.name!r}")
    return 0 if result.persisted else 2


def _format_link(link: Link, editable: bool) -> str:
    owner = link.owner or "-"
    mark = "*" if editable else " "
    return f"{mark} {link.id}  [{link.layer}:{owner}]  {link.group} / {link.name}  {link.url}"


def _draft_from_args(args: argparse.Namespace, current: Link | None = None) -> UpsertLinkInput:
    def pick(value: str | None, fallback: str) -> str:
        return value if value is not None else fallback

    layer = "global" if args.global_layer else "personal"
    if current is not None and not args.global_layer and not args.personal_layer:
        layer = current.layer
    open_in_frame = current.open_in_frame if current else False
    if args.frame is not None:
        open_in_frame = args.frame
    return UpsertLinkInput(
        name=pick(args.name, current.name if current else ""),
        url=pick(args.url, current.url if current else ""),
        group=pick(args.group, current.group if current else ""),
        description=pick(args.description, current.description if current else ""),
        open_in_frame=open_in_frame,
        layer=layer,
    )


# --- Handlers ---


def handle_list(store: LayeredLinkStore, args: argparse.Namespace) -> int:
    result = run_list(store, FilterInput(query=args.query, group=args.group))
    for link in result.links:
        print(_format_link(link, store.can_edit(link)))
    print(f"{result.total} links.")
    return 0


def handle_groups(store: LayeredLinkStore, args: argparse.Namespace) -> int:
    for group in store.groups():
        print(group)
    return 0


def handle_add(store: LayeredLinkStore, args: argparse.Namespace) -> int:
    return _report(run_create(_draft_from_args(args), store), "Added")


def handle_edit(store: LayeredLinkStore, args: argparse.Namespace) -> int:
    current = store.get(args.link_id)
    if current is None:
        print(f"Link {args.link_id} not found.", file=sys.stderr)
        return 1
    draft = _draft_from_args(args, current)
    return _report(run_update(UpdateLinkInput(link_id=args.link_id, draft=draft), store), "Saved")


def handle_duplicate(store: LayeredLinkStore, args: argparse.Namespace) -> int:
    return _report(run_duplicate(DuplicateLinkInput(link_id=args.link_id), store), "Duplicated")


def handle_delete(store: LayeredLinkStore, args: argparse.Namespace) -> int:
    return _report(run_delete(DeleteLinkInput(link_id=args.link_id), store), "Deleted")


def handle_move(store: LayeredLinkStore, args: argparse.Namespace) -> int:
    moved = run_move(MoveLinkInput(from_id=args.from_id, to_id=args.to_id), store)
    if not moved.success:
        print(f"Cannot move: {moved.reason}.", file=sys.stderr)
        return 1
    saved = run_save_order(store)
    for warning in saved.warnings:
        print(f"Warning: {warning.message}", file=sys.stderr)
    if not saved.success:
        return 2
    print("Order saved.")
    return 0


def handle_import(store: LayeredLinkStore, args: argparse.Namespace) -> int:
    try:
        text = Path(args.file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: cannot read {args.file}: {e}", file=sys.stderr)
        return 1
    result = run_import(ImportLinksInput(payload=text, is_text=True), store)
    if result.refused:
        print("Only administrators can import.", file=sys.stderr)
        return 1
    if result.errors:
        _print_errors(result.errors)
        return 1
    for warning in result.warnings:
        print(f"Warning: {warning.message}", file=sys.stderr)
    print("Imported successfully.")
    return 0 if not result.warnings else 2


def handle_export(store: LayeredLinkStore, args: argparse.Namespace) -> int:
    payload = json.dumps(run_export(store), indent=2)
    if args.file:
        Path(args.file).write_text(payload + "\n", encoding="utf-8")
        print(f"Exported to {args.file}.")
    else:
        print(payload)
    return 0


HANDLERS = {
    "list": handle_list,
    "groups": handle_groups,
    "add": handle_add,
    "edit": handle_edit,
    "duplicate": handle_duplicate,
    "delete": handle_delete,
    "move": handle_move,
    "import": handle_import,
    "export": handle_export,
}


def _add_draft_arguments(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--name", required=required, help="Link name")
    parser.add_argument("--url", required=required, help="Link URL (https:// assumed)")
    parser.add_argument("--group", help="Group (default: General)")
    parser.add_argument("--description", help="Description")
    frame = parser.add_mutually_exclusive_group()
    frame.add_argument("--frame", dest="frame", action="store_true", default=None)
    frame.add_argument("--no-frame", dest="frame", action="store_false")
    layer = parser.add_mutually_exclusive_group()
    layer.add_argument("--global", dest="global_layer", action="store_true", help="Global layer (admins)")
    layer.add_argument("--personal", dest="personal_layer", action="store_true")


def _default_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="LinkDash shared bookmark dashboard")
    parser.add_argument("--rules", default=RULES_PATH, help="Path to rules.yaml")
    parser.add_argument("--user", default=_default_user(), help="Act as this user")
    parser.add_argument("--admin", action="store_true", help="Act with administrator rights")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # list
    list_parser = subparsers.add_parser("list", help="List links")
    list_parser.add_argument("-q", "--query", default="", help="Text search")
    list_parser.add_argument("-g", "--group", default="", help="Group filter")

    # groups
    subparsers.add_parser("groups", help="List groups")

    # add / edit
    _add_draft_arguments(subparsers.add_parser("add", help="Add a link"), required=True)
    edit_parser = subparsers.add_parser("edit", help="Edit a link")
    edit_parser.add_argument("link_id")
    _add_draft_arguments(edit_parser, required=False)

    # duplicate / delete
    subparsers.add_parser("duplicate", help="Duplicate a link").add_argument("link_id")
    subparsers.add_parser("delete", help="Delete a link").add_argument("link_id")

    # move
    move_parser = subparsers.add_parser("move", help="Move a link to another link's position")
    move_parser.add_argument("from_id")
    move_parser.add_argument("to_id")

    # import / export
    subparsers.add_parser("import", help="Import a JSON bundle (admins)").add_argument("file")
    export_parser = subparsers.add_parser("export", help="Export a JSON bundle")
    export_parser.add_argument("file", nargs="?", help="Output file (default: stdout)")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    store = get_store(args)
    try:
        return HANDLERS[args.command](store, args)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
