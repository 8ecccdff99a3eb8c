"""Script to validate a stored workflow definition
Run: python -m scripts.validate_definition WFD-xxxxxxxxxxxx
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from advanced_workflow.domain.errors import DefinitionNotFoundError
from advanced_workflow.services.definition_service import DefinitionService


def validate_definition(definition_id: str) -> bool:
    service = DefinitionService()
    try:
        definition = service.get_definition(definition_id)
    except DefinitionNotFoundError:
        print(f"[FAIL] Definition {definition_id} not found")
        return False

    print(f"Found definition: {definition.title} (version {definition.version})")
    print(f"   Initial action: {definition.initial_action_id}")
    print()

    print("=" * 60)
    print("ACTIONS")
    print("=" * 60)
    for action in definition.sorted_actions():
        print(f"\n{action.sort}. [{action.action_type.value}] {action.title}")
        print(f"   ID: {action.action_id}")
        print(f"   Behavior: {action.behavior}  Editing: {action.allow_editing.value}")
        for t in action.transitions:
            print(f"   --[{t.title} / {t.guard}]--> {t.next_action_id}")

    result = service.validate_definition(definition_id)

    print("\n" + "=" * 60)
    print("VALIDATION RESULTS")
    print("=" * 60)
    if result["errors"]:
        print("\nERRORS:")
        for e in result["errors"]:
            print(f"   - {e['type']} at {e['path']}: {e['message']}")
    if result["warnings"]:
        print("\nWARNINGS:")
        for w in result["warnings"]:
            print(f"   - {w['type']} at {w['path']}: {w['message']}")

    if result["is_valid"]:
        print("\nDEFINITION IS VALID" + (" (with warnings)" if result["warnings"] else ""))
    else:
        print("\nDEFINITION HAS ERRORS")
    return result["is_valid"]


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python -m scripts.validate_definition <definition_id>")
        sys.exit(2)
    sys.exit(0 if validate_definition(sys.argv[1]) else 1)
