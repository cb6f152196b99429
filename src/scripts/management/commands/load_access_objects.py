"""Load the static access-object tree from a JSON file."""

import json
import logging
from collections.abc import Iterable, Mapping

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from access_control.models import AccessObject, Action, Grant
from access_control.tree import AccessObjectNode, AccessObjectTree

logger = logging.getLogger(__name__)

OBJECT_TYPES = {choice.value for choice in AccessObject.Type}
ACTION_TYPES = {choice.value for choice in Action.Type}
# Expected parent type for each object type under --strict.
STRICT_PARENT = {"APP": None, "TAB": "APP", "BUTTON": "TAB"}


def validate_definitions(definitions: Iterable[Mapping], strict: bool = False) -> list[str]:
    """Return a list of problems found in nested object definitions."""
    problems: list[str] = []
    object_names: set[str] = set()
    action_names: set[str] = set()

    def visit(definition: Mapping, parent_type: str | None) -> None:
        name = definition.get("name")
        object_type = definition.get("type")
        if not name:
            problems.append("Access object without a name.")
            return
        if name in object_names:
            problems.append(f"Duplicate access object '{name}'.")
        object_names.add(name)
        if object_type not in OBJECT_TYPES:
            problems.append(f"Access object '{name}' has invalid type '{object_type}'.")
        elif strict and STRICT_PARENT[object_type] != parent_type:
            problems.append(
                f"Access object '{name}' of type {object_type} cannot be nested under {parent_type or 'the root'}."
            )

        for action in definition.get("actions", ()):
            action_name = action.get("name")
            if not action_name:
                problems.append(f"Action without a name on '{name}'.")
                continue
            if action_name in action_names:
                problems.append(f"Duplicate action '{action_name}'.")
            action_names.add(action_name)
            if action.get("type") not in ACTION_TYPES:
                problems.append(f"Action '{action_name}' has invalid type '{action.get('type')}'.")

        for child in definition.get("children", ()):
            visit(child, object_type)

    for definition in definitions:
        visit(definition, None)
    return problems


def load_definitions(definitions: list[Mapping], strict: bool = False, prune: bool = False) -> dict[str, int]:
    """Upsert the tree described by ``definitions`` in file order.

    With ``prune`` every object and action missing from the definitions is
    deleted; grants on removed actions are deleted with them.
    """
    problems = validate_definitions(definitions, strict=strict)
    if problems:
        raise CommandError("Invalid access object definitions:\n  " + "\n  ".join(problems))

    tree = AccessObjectTree.from_definitions(definitions)
    stats = {"objects": 0, "actions": 0, "pruned_objects": 0, "pruned_actions": 0, "pruned_grants": 0}

    def upsert(node: AccessObjectNode, parent: AccessObject | None, position: int) -> None:
        obj, _ = AccessObject.objects.update_or_create(
            name=node.name,
            defaults={"type": node.type, "parent": parent, "position": position},
        )
        stats["objects"] += 1
        for index, action in enumerate(node.actions):
            Action.objects.update_or_create(
                name=action.name,
                defaults={
                    "type": action.type,
                    "description": action.description,
                    "access_object": obj,
                    "position": index,
                },
            )
            stats["actions"] += 1
        for index, child in enumerate(node.children):
            upsert(child, obj, index)

    with transaction.atomic():
        for index, root in enumerate(tree.get_tree()):
            upsert(root, None, index)

        if prune:
            stale_actions = Action.objects.exclude(name__in=tree.all_action_names())
            stats["pruned_grants"] = Grant.objects.filter(action_id__in=stale_actions.values("name")).count()
            stats["pruned_actions"] = stale_actions.count()
            stale_actions.delete()

            keep = [node.name for node in tree.walk()]
            stale_objects = AccessObject.objects.exclude(name__in=keep)
            stats["pruned_objects"] = stale_objects.count()
            stale_objects.delete()

    if stats["pruned_grants"]:
        logger.warning("Pruned %d grant(s) on removed actions", stats["pruned_grants"])
    return stats


class Command(BaseCommand):
    """Provision access objects and actions from JSON."""

    help = (
        "Load the access-object tree (APP -> TAB -> BUTTON with actions) from a JSON file. "
        "Objects and actions are matched by name and updated in place."
    )

    def add_arguments(self, parser):
        parser.add_argument("path", help="JSON file with a list of root access objects.")
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Require APP at the root, TAB under APP, and BUTTON under TAB.",
        )
        parser.add_argument(
            "--prune",
            action="store_true",
            help="Delete objects and actions (and grants on them) that are not in the file.",
        )

    def handle(self, *args, **options):
        try:
            with open(options["path"], encoding="utf-8") as fh:
                definitions = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise CommandError(f"Cannot read {options['path']}: {exc}") from exc

        if not isinstance(definitions, list):
            raise CommandError("The file must contain a JSON list of root access objects.")

        stats = load_definitions(definitions, strict=options["strict"], prune=options["prune"])
        self.stdout.write(
            self.style.SUCCESS(
                "Loaded {objects} object(s) and {actions} action(s); pruned {pruned_objects} object(s), "
                "{pruned_actions} action(s), {pruned_grants} grant(s).".format(**stats)
            )
        )
