"""
Workflow Engine - The state machine that advances workflow instances

=============================================================================
MODULE STRUCTURE
=============================================================================

1. INITIALIZATION
   - Constructor with repository, registry and resolver dependencies

2. DEFINITION LOADING
   - load_definition: fetch a definition and resolve its declared types
   - resolve_types: reject unknown behavior / guard / hook names

3. START
   - start: create an instance and its first action runtime

4. EXECUTION
   - execute: run the current action and advance while exactly one
     transition is valid
   - perform_transition: take an explicitly chosen transition, then execute
   - _advance: the iterative execute loop shared by both entry points
   - _commit_transition: versioned switch to the next action + hooks

5. QUERIES
   - get_valid_transitions: choices offered while paused
   - can_edit_target / can_view_target / can_publish_target

=============================================================================
EXECUTION RULES
=============================================================================

For the current action A of an ACTIVE or PAUSED instance:

    A unfinished -> run A's behavior
        not done -> return, status unchanged
        done     -> mark A finished (stamp the acting member)
    evaluate A's transitions through their guards
        exactly one valid          -> take it, continue with the next action
        none valid, none defined   -> COMPLETE, current cleared
        none valid, some defined   -> PAUSED (waiting for a guard to open)
        several valid              -> PAUSED (waiting for a choice)

Every instance write is versioned; a concurrent advance of the same
instance fails with ConcurrencyError instead of double-advancing.
=============================================================================
"""

from typing import List, Optional

from ..config.settings import settings
from ..domain.models import (
    ActorContext, ActionDefinition, ActionRuntime, TargetRef, TransitionDefinition,
    WorkflowDefinition, WorkflowInstance
)
from ..domain.enums import WorkflowStatus, AllowEditing, Capability
from ..domain.errors import (
    InvalidDefinitionError, NoCurrentActionError, InstanceNotActiveError,
    DanglingTransitionError, TransitionNotFoundError, TransitionHookError,
    AutoAdvanceLimitError, ActionNotFoundError, UnknownTypeError
)
from ..repositories import (
    get_instance_repository, get_definition_repository, get_group_repository,
    get_target_repository
)
from .assignment_resolver import AssignmentResolver
from .audit_writer import AuditWriter
from .behaviors import ActionBehavior, behavior_registry
from .context import ExecutionContext
from .guards import TransitionGuard, guard_registry
from .hooks import TransitionHook, hook_registry
from .registry import Registry
from .transition_resolver import TransitionResolver
from ..utils.idgen import generate_instance_id, generate_runtime_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class WorkflowEngine:
    """
    The Workflow Engine - advances instances through their definition graph

    Responsibilities:
    - Start instances from definitions
    - Execute the current action and evaluate its transitions
    - Auto-advance through unambiguous transitions
    - Pause on ambiguity or closed guards, complete on terminal actions
    - Answer capability queries for the target on behalf of the current action

    The engine is synchronous and holds no state between calls; PAUSED is a
    persisted status, not a blocked call.
    """

    def __init__(
        self,
        instance_repo=None,
        definition_repo=None,
        group_repo=None,
        target_repo=None,
        audit_writer: Optional[AuditWriter] = None,
        behaviors: Optional[Registry[ActionBehavior]] = None,
        guards: Optional[Registry[TransitionGuard]] = None,
        hooks: Optional[Registry[TransitionHook]] = None,
        max_chain_steps: Optional[int] = None
    ):
        self.instance_repo = instance_repo or get_instance_repository()
        self.definition_repo = definition_repo or get_definition_repository()
        self.target_repo = target_repo if target_repo is not None else get_target_repository()
        self.audit_writer = audit_writer or AuditWriter()
        self.behaviors = behaviors or behavior_registry
        self.guards = guards or guard_registry
        self.hooks = hooks or hook_registry
        self.max_chain_steps = max_chain_steps or settings.engine_max_chain_steps
        self.assignment_resolver = AssignmentResolver(
            group_repo=group_repo if group_repo is not None else get_group_repository()
        )
        self.transition_resolver = TransitionResolver(guards=self.guards)

    # =========================================================================
    # Definition Loading
    # =========================================================================

    def load_definition(self, definition_id: str) -> WorkflowDefinition:
        """Fetch a definition and make sure every declared type resolves"""
        definition = self.definition_repo.get_definition_or_raise(definition_id)
        self.resolve_types(definition)
        return definition

    def resolve_types(self, definition: WorkflowDefinition) -> None:
        """
        Check behaviors, guards and hooks named by the definition

        Raises:
            InvalidDefinitionError: If a name is unknown or its config is unusable
        """
        try:
            for action in definition.actions:
                self.behaviors.get(action.behavior).validate(action)
                for transition in action.transitions:
                    self.guards.get(transition.guard).validate(transition)
                    for hook_name in transition.hooks:
                        self.hooks.get(hook_name)
        except UnknownTypeError as e:
            raise InvalidDefinitionError(
                f"Definition {definition.definition_id}: {e.message}",
                details={"definition_id": definition.definition_id, **e.details}
            )

    # =========================================================================
    # Start
    # =========================================================================

    def start(
        self,
        definition: WorkflowDefinition,
        actor: ActorContext,
        target: Optional[TargetRef] = None
    ) -> WorkflowInstance:
        """
        Start a new instance of a definition

        The target is optional; without one the workflow runs as a plain
        checklist. The target object itself is not modified.

        Raises:
            InvalidDefinitionError: If the definition has no usable initial action
        """
        initial_action = definition.get_initial_action()
        if initial_action is None:
            raise InvalidDefinitionError(
                f"Definition {definition.definition_id} has no initial action",
                details={
                    "definition_id": definition.definition_id,
                    "initial_action_id": definition.initial_action_id
                }
            )
        self.resolve_types(definition)

        now = utc_now()
        instance_id = generate_instance_id()
        runtime = self._new_runtime(instance_id, initial_action)

        instance = WorkflowInstance(
            instance_id=instance_id,
            title=f"Instance #{instance_id} of {definition.title}",
            status=WorkflowStatus.ACTIVE,
            definition_id=definition.definition_id,
            target=target,
            current_action_id=runtime.runtime_id,
            current_action_type=initial_action.action_type,
            initiator_id=actor.user_id,
            assigned_users=list(definition.users),
            assigned_groups=list(definition.groups),
            created_at=now,
            updated_at=now,
            version=1
        )

        self.instance_repo.create_instance(instance)
        self.instance_repo.create_runtime(runtime)
        self.audit_writer.write_started(instance, actor)

        logger.info(
            f"Started workflow instance {instance_id} of {definition.definition_id}",
            extra={
                "instance_id": instance_id,
                "definition_id": definition.definition_id,
                "action_id": initial_action.action_id,
                "actor_id": actor.user_id
            }
        )
        return instance

    # =========================================================================
    # Execution
    # =========================================================================

    def execute(self, instance: WorkflowInstance, actor: ActorContext) -> WorkflowInstance:
        """
        Execute the current action and advance as far as possible

        Returns the instance as persisted after the call. A single call may
        traverse several actions when each has exactly one valid transition.
        The stored instance is authoritative; the passed object only names it.

        Raises:
            InstanceNotActiveError: Instance is complete or cancelled
            NoCurrentActionError: Instance has no current action
        """
        instance = self._reload(instance)
        self.ensure_runnable(instance)
        definition = self.load_definition(instance.definition_id)
        return self._advance(instance, definition, actor)

    def perform_transition(
        self,
        instance: WorkflowInstance,
        transition_id: str,
        actor: ActorContext
    ) -> WorkflowInstance:
        """
        Take a transition out of the current action, then execute

        The guard is not re-checked here; callers choosing on behalf of a
        user are expected to have offered only valid transitions.

        Raises:
            InstanceNotActiveError: Instance is complete or cancelled
            NoCurrentActionError: Instance has no current action
            TransitionNotFoundError: Transition does not leave the current action
            DanglingTransitionError: Transition target no longer exists
            TransitionHookError: A post-transition hook failed (transition kept)
        """
        instance = self._reload(instance)
        self.ensure_runnable(instance)
        definition = self.load_definition(instance.definition_id)

        runtime = self.instance_repo.get_runtime_or_raise(instance.current_action_id)
        action = self._get_action(definition, runtime)
        transition = action.get_transition(transition_id)
        if transition is None:
            raise TransitionNotFoundError(
                f"Transition {transition_id} does not leave action {action.action_id}",
                details={"transition_id": transition_id, "action_id": action.action_id}
            )

        instance = self._commit_transition(instance, definition, transition, actor)
        return self._advance(instance, definition, actor)

    def _advance(
        self,
        instance: WorkflowInstance,
        definition: WorkflowDefinition,
        actor: ActorContext
    ) -> WorkflowInstance:
        """Run the current action, then follow single valid transitions iteratively"""
        chain_steps = 0

        while True:
            runtime = self.instance_repo.get_runtime_or_raise(instance.current_action_id)
            action = self._get_action(definition, runtime)

            # A finished action is being re-entered: only the transitions need another look
            if not runtime.finished:
                behavior = self.behaviors.get(action.behavior)
                if not behavior.execute(self._context(instance, actor), action, runtime):
                    logger.info(
                        f"Action {action.action_id} not finished yet",
                        extra={"instance_id": instance.instance_id, "action_id": action.action_id}
                    )
                    return instance

                runtime = self.instance_repo.finish_runtime(runtime.runtime_id, actor.user_id)
                self.audit_writer.write_action_finished(instance, runtime.runtime_id, action.action_id, actor)

            valid = self.transition_resolver.get_valid_transitions(action, self._context(instance, actor))

            if len(valid) == 1:
                chain_steps += 1
                if chain_steps > self.max_chain_steps:
                    logger.error(
                        f"Auto-advance limit of {self.max_chain_steps} reached; definition likely cyclic",
                        extra={"instance_id": instance.instance_id, "definition_id": definition.definition_id}
                    )
                    raise AutoAdvanceLimitError(
                        f"Instance {instance.instance_id} exceeded {self.max_chain_steps} automatic transitions",
                        details={"instance_id": instance.instance_id, "action_id": action.action_id}
                    )
                instance = self._commit_transition(instance, definition, valid[0], actor)
                continue

            if not valid and not action.transitions:
                instance = self.instance_repo.update_instance(
                    instance.instance_id,
                    {
                        "status": WorkflowStatus.COMPLETE,
                        "current_action_id": None,
                        "current_action_type": None,
                        "completed_at": utc_now()
                    },
                    expected_version=instance.version
                )
                self.audit_writer.write_completed(instance, actor)
                logger.info(
                    f"Workflow instance {instance.instance_id} complete",
                    extra={"instance_id": instance.instance_id, "status": instance.status.value}
                )
                return instance

            if instance.status != WorkflowStatus.PAUSED:
                instance = self.instance_repo.update_instance(
                    instance.instance_id,
                    {"status": WorkflowStatus.PAUSED},
                    expected_version=instance.version
                )
                self.audit_writer.write_paused(instance, actor, len(valid))

            logger.info(
                f"Workflow instance {instance.instance_id} paused at {action.action_id} "
                f"({len(valid)} of {len(action.transitions)} transitions valid)",
                extra={"instance_id": instance.instance_id, "action_id": action.action_id, "status": instance.status.value}
            )
            return instance

    def _commit_transition(
        self,
        instance: WorkflowInstance,
        definition: WorkflowDefinition,
        transition: TransitionDefinition,
        actor: ActorContext
    ) -> WorkflowInstance:
        """
        Move the instance onto the transition's target action

        The versioned instance write is the commit point; the new runtime is
        inserted only after it succeeds. Hooks run afterwards and never undo
        the transition.
        """
        next_action = definition.get_action(transition.next_action_id)
        if next_action is None:
            raise DanglingTransitionError(
                f"Transition {transition.transition_id} points to missing action {transition.next_action_id}",
                details={
                    "transition_id": transition.transition_id,
                    "next_action_id": transition.next_action_id
                }
            )

        runtime = self._new_runtime(instance.instance_id, next_action)
        instance = self.instance_repo.update_instance(
            instance.instance_id,
            {
                "current_action_id": runtime.runtime_id,
                "current_action_type": next_action.action_type,
                "status": WorkflowStatus.ACTIVE
            },
            expected_version=instance.version
        )
        self.instance_repo.create_runtime(runtime)
        self.audit_writer.write_transition(instance, transition, actor)

        logger.info(
            f"Transition {transition.transition_id} -> {next_action.action_id}",
            extra={
                "instance_id": instance.instance_id,
                "transition_id": transition.transition_id,
                "action_id": next_action.action_id,
                "actor_id": actor.user_id
            }
        )

        self._run_hooks(instance, transition, actor)
        return instance

    def _run_hooks(
        self,
        instance: WorkflowInstance,
        transition: TransitionDefinition,
        actor: ActorContext
    ) -> None:
        """Run post-transition hooks in order; the first failure is surfaced"""
        if not transition.hooks:
            return

        ctx = self._context(instance, actor)
        for hook_name in transition.hooks:
            hook = self.hooks.get(hook_name)
            try:
                hook(transition, ctx)
            except Exception as e:
                logger.error(
                    f"Post-transition hook '{hook_name}' failed: {e}",
                    exc_info=True,
                    extra={"instance_id": instance.instance_id, "transition_id": transition.transition_id}
                )
                self.audit_writer.write_hook_failed(instance, transition, hook_name, actor, str(e))
                raise TransitionHookError(
                    f"Hook '{hook_name}' failed after transition {transition.transition_id}",
                    details={
                        "instance_id": instance.instance_id,
                        "transition_id": transition.transition_id,
                        "hook": hook_name,
                        "error": str(e)
                    }
                ) from e

    # =========================================================================
    # Queries
    # =========================================================================

    def get_valid_transitions(
        self,
        instance: WorkflowInstance,
        actor: ActorContext
    ) -> List[TransitionDefinition]:
        """Transitions currently valid out of the current action (empty if none)"""
        current = self._current_action(instance)
        if current is None:
            return []
        action, _ = current
        return self.transition_resolver.get_valid_transitions(action, self._context(instance, actor))

    def can_edit_target(self, instance: WorkflowInstance, actor: ActorContext) -> Capability:
        """
        May the target be edited while the current action is active?

        The behavior's explicit answer wins, otherwise the action's
        allow_editing policy decides.
        """
        current = self._current_action(instance)
        if current is None:
            return Capability.UNDECIDED
        action, _ = current

        answer = self.behaviors.get(action.behavior).can_edit_target(self._context(instance, actor), action)
        if answer != Capability.UNDECIDED:
            return answer

        if action.allow_editing == AllowEditing.BY_ASSIGNEES:
            if self.assignment_resolver.user_has_access(instance, actor):
                return Capability.ALLOW
            return Capability.DENY
        if action.allow_editing == AllowEditing.CONTENT_SETTINGS:
            return Capability.UNDECIDED
        return Capability.DENY

    def can_view_target(self, instance: WorkflowInstance, actor: ActorContext) -> Capability:
        """Does the current action restrict viewing of the target?"""
        current = self._current_action(instance)
        if current is None:
            return Capability.ALLOW
        action, _ = current
        return self.behaviors.get(action.behavior).can_view_target(self._context(instance, actor), action)

    def can_publish_target(self, instance: WorkflowInstance, actor: ActorContext) -> Capability:
        """Does the current action restrict publishing of the target?"""
        current = self._current_action(instance)
        if current is None:
            return Capability.UNDECIDED
        action, _ = current
        return self.behaviors.get(action.behavior).can_publish_target(self._context(instance, actor), action)

    # =========================================================================
    # Helpers
    # =========================================================================

    def ensure_runnable(self, instance: WorkflowInstance) -> None:
        """Raise unless the instance can still be executed or transitioned"""
        if instance.status.is_terminal:
            raise InstanceNotActiveError(
                f"Instance {instance.instance_id} is {instance.status.value}",
                details={"instance_id": instance.instance_id, "status": instance.status.value}
            )
        if not instance.current_action_id:
            raise NoCurrentActionError(
                f"Instance {instance.instance_id} has no current action",
                details={"instance_id": instance.instance_id}
            )

    def _reload(self, instance: WorkflowInstance) -> WorkflowInstance:
        """Fresh copy from storage; a caller may hold one read before a cancel"""
        return self.instance_repo.get_instance_or_raise(instance.instance_id)

    def _current_action(self, instance: WorkflowInstance):
        """(action definition, runtime) for the current action, or None"""
        if not instance.current_action_id:
            return None
        definition = self.definition_repo.get_definition_or_raise(instance.definition_id)
        runtime = self.instance_repo.get_runtime_or_raise(instance.current_action_id)
        return self._get_action(definition, runtime), runtime

    def _get_action(self, definition: WorkflowDefinition, runtime: ActionRuntime) -> ActionDefinition:
        action = definition.get_action(runtime.action_id)
        if action is None:
            raise ActionNotFoundError(
                f"Action {runtime.action_id} no longer exists in definition {definition.definition_id}",
                details={"action_id": runtime.action_id, "runtime_id": runtime.runtime_id}
            )
        return action

    def _new_runtime(self, instance_id: str, action: ActionDefinition) -> ActionRuntime:
        return ActionRuntime(
            runtime_id=generate_runtime_id(),
            instance_id=instance_id,
            action_id=action.action_id,
            title=action.title,
            finished=False,
            created_at=utc_now()
        )

    def _context(self, instance: WorkflowInstance, actor: ActorContext) -> ExecutionContext:
        target_doc = None
        if instance.target is not None and self.target_repo is not None:
            target_doc = self.target_repo.get_target(instance.target)
        return ExecutionContext(
            instance=instance,
            actor=actor,
            assignments=self.assignment_resolver,
            target=target_doc
        )
