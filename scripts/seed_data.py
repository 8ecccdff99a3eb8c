"""
Seed Data Script - Creates sample workflow definitions for testing
Run: python -m scripts.seed_data
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from advanced_workflow.domain.errors import WorkflowValidationError
from advanced_workflow.domain.models import ActorContext
from advanced_workflow.repositories import get_group_repository
from advanced_workflow.repositories.mongo_client import create_indexes
from advanced_workflow.config.settings import settings
from advanced_workflow.services.definition_service import DefinitionService


SEED_ACTOR = ActorContext(user_id="seed", display_name="Seed Script", roles=["ADMIN"])

PAGE_REVIEW = {
    "title": "Page review",
    "description": "Draft a page, have an editor decide, then publish.",
    "initial_action_id": "draft",
    "actions": [
        {
            "action_id": "draft",
            "title": "Draft",
            "allow_editing": "BY_ASSIGNEES",
            "transitions": [{"transition_id": "submit", "title": "Submit for review", "next_action_id": "review"}],
        },
        {
            "action_id": "review",
            "title": "Editorial review",
            "behavior": "require_comment",
            "transitions": [
                {"transition_id": "approve", "title": "Approve", "next_action_id": "published"},
                {"transition_id": "reject", "title": "Send back", "next_action_id": "draft"},
            ],
        },
        {"action_id": "published", "title": "Published"},
    ],
    "groups": ["editors"],
}

EMBARGOED_RELEASE = {
    "title": "Embargoed release",
    "description": "Hold a page until its embargo flag is lifted, then publish automatically.",
    "initial_action_id": "wait",
    "actions": [
        {
            "action_id": "wait",
            "title": "Wait for embargo",
            "action_type": "DYNAMIC",
            "behavior": "condition",
            "behavior_config": {
                "condition": {
                    "logic": "AND",
                    "conditions": [{"field": "target.embargoed", "operator": "EQUALS", "value": False}],
                },
                "block_publish": True,
            },
            "transitions": [{"transition_id": "release", "title": "Release", "next_action_id": "released"}],
        },
        {"action_id": "released", "title": "Released"},
    ],
    "groups": ["editors"],
}


def create_sample_definitions(service: DefinitionService):
    """Create the sample definitions unless some already exist"""
    _, total = service.list_definitions(limit=1)
    if total > 0:
        print("Storage already has definitions. Skipping seed.")
        return

    for document in (PAGE_REVIEW, EMBARGOED_RELEASE):
        try:
            definition = service.create_definition(document, SEED_ACTOR)
        except WorkflowValidationError as e:
            print(f"[FAIL] {document['title']}: {e.details.get('errors')}")
            continue
        print(f"Created definition: {definition.definition_id} ({definition.title})")

    get_group_repository().set_members("editors", ["editor@company.com"])
    print("Created group: editors")


def main():
    print("=== Seeding workflow definitions ===")
    print("-" * 40)

    if not settings.use_memory_storage:
        create_indexes()

    create_sample_definitions(DefinitionService())

    print("-" * 40)
    print("Done!")


if __name__ == "__main__":
    main()
