"""Six-stage approval workflow for trip segments.

Every segment is checked in and out twice: stages 0-2 run at the origin and
stages 3-5 at the destination, each location going through security entry,
stores verification and security exit. A stage can only be acted on once its
predecessor is approved, and order status is derived from the state of every
stage across all segments.
"""

import logging
from datetime import datetime, timezone

from core.auth import Actor, Role
from core.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.models import (
    Order,
    OrderStatus,
    Segment,
    StageKind,
    StageStatus,
    WorkflowAction,
    WorkflowStage,
)

logger = logging.getLogger(__name__)

STAGE_SEQUENCE = (StageKind.SECURITY_ENTRY, StageKind.STORES_VERIFICATION, StageKind.SECURITY_EXIT)
STAGE_COUNT = 2 * len(STAGE_SEQUENCE)
FIRST_DESTINATION_INDEX = len(STAGE_SEQUENCE)

SECURITY_DEPARTMENTS = frozenset(
    {
        "Security-Factory 1",
        "Security-Factory 2",
        "Security-Factory 3",
        "Security-Factory 4",
    }
)

STORES_DEPARTMENTS = frozenset(
    {
        "Stores IAF UNit-I/ Soliflex unit-I",
        "Stores Unit-IV/ Soliflex unit-II",
        "Soliflex Unit-III",
        "Fabric IAF unit-1 / Soliflex unit-1",
        "Fabric Soliflex unit-III",
        "Fabric Unit-IV/ Soliflex unit-II",
    }
)

SEGMENT_COMPLETED = "COMPLETED"
SEGMENT_CANCELED = "CANCELED"


def pending_marker(stage: StageKind) -> str:
    return f"{stage.value}_PENDING"


def rejected_marker(stage: StageKind) -> str:
    return f"{stage.value}_REJECTED"


def initialize_workflow(segment: Segment) -> list[WorkflowStage]:
    return [
        WorkflowStage(
            stage=kind,
            location=segment.source if index < FIRST_DESTINATION_INDEX else segment.destination,
            stage_index=index,
        )
        for index, kind in enumerate(STAGE_SEQUENCE * 2)
    ]


def migrate_legacy_workflow(segment: Segment) -> list[WorkflowStage]:
    """Bring a segment's workflow to the 6-stage shape.

    The legacy workflow only tracked the destination, so its three stages map
    onto stages 3-5; a segment without a workflow gets a fresh one.
    """
    if len(segment.workflow) == STAGE_COUNT:
        return sorted(segment.workflow, key=lambda stage: stage.stage_index)

    workflow = initialize_workflow(segment)
    if len(segment.workflow) == len(STAGE_SEQUENCE):
        legacy = sorted(segment.workflow, key=lambda stage: stage.stage_index)
        for offset, old in enumerate(legacy):
            workflow[FIRST_DESTINATION_INDEX + offset] = workflow[FIRST_DESTINATION_INDEX + offset].model_copy(
                update={
                    "status": old.status,
                    "approved_by": old.approved_by,
                    "department": old.department,
                    "timestamp": old.timestamp,
                    "comments": old.comments,
                }
            )
        logger.info("Migrated segment %d from 3-stage to 6-stage workflow", segment.segment_id)
    return workflow


def _is_admin_or_accounts(department: str) -> bool:
    normalized = (department or "").strip().lower()
    return "admin" in normalized or "account" in normalized


def can_perform(department: str, role: Role, stage: StageKind, action: WorkflowAction) -> bool:
    if role == Role.SUPER_USER:
        return True
    if _is_admin_or_accounts(department):
        return True
    if action in (WorkflowAction.CANCEL, WorkflowAction.REVOKE):
        return role in (Role.APPROVAL_MANAGER, Role.SUPER_USER)
    if stage == StageKind.STORES_VERIFICATION:
        return department in STORES_DEPARTMENTS
    return department in SECURITY_DEPARTMENTS


def find_segment(order: Order, segment_id: int) -> tuple[int, Segment]:
    for position, segment in enumerate(order.segments):
        if segment.segment_id == segment_id:
            return position, segment
    raise NotFoundError(
        f"Segment {segment_id} not found on order {order.order_id}",
        code=ErrorCode.SEGMENT_NOT_FOUND,
    )


def find_stage(segment: Segment, stage: StageKind, location: str | None = None) -> WorkflowStage:
    """Locate a stage by kind and location.

    Without a location the earliest stage of that kind that is not yet
    approved is chosen, falling back to the first one.
    """
    wanted = location.strip().lower() if location else None
    candidates = [
        step
        for step in segment.workflow
        if step.stage == stage and (wanted is None or step.location.strip().lower() == wanted)
    ]
    if not candidates:
        raise NotFoundError(
            f"Workflow step {stage.value} at {location or 'any location'} not found on segment {segment.segment_id}",
            code=ErrorCode.STAGE_NOT_FOUND,
        )
    if wanted is None:
        for step in candidates:
            if not step.status.is_approved:
                return step
    return candidates[0]


def is_stage_actionable(order: Order, segment: Segment, stage_index: int) -> bool:
    if order.status != OrderStatus.EN_ROUTE:
        return False
    workflow = segment.workflow
    if workflow[stage_index].status != StageStatus.PENDING:
        return False
    if any(workflow[i].status == StageStatus.REJECTED for i in range(stage_index)):
        return False
    if stage_index > 0:
        return workflow[stage_index - 1].status.is_approved

    # A segment's origin entry opens only once the previous segment has fully cleared.
    position = next(i for i, s in enumerate(order.segments) if s.segment_id == segment.segment_id)
    if position == 0:
        return True
    return all(step.status.is_approved for step in order.segments[position - 1].workflow)


def is_order_rejected(order: Order) -> bool:
    if order.status in (OrderStatus.REJECTED, OrderStatus.CANCELLED):
        return True
    return any(
        step.status in (StageStatus.REJECTED, StageStatus.CANCELED)
        for segment in order.segments
        for step in segment.workflow
    )


def is_order_completed(order: Order) -> bool:
    if is_order_rejected(order) or not order.segments:
        return False
    for segment in order.segments:
        if not segment.workflow:
            if order.status != OrderStatus.COMPLETED:
                return False
            continue
        if not all(step.status.is_approved for step in segment.workflow):
            return False
    return True


def derive_order_status(order: Order) -> OrderStatus | None:
    """Terminal status the order should move to after a workflow change, if any."""
    if is_order_rejected(order):
        return None if order.is_terminal else OrderStatus.REJECTED
    if is_order_completed(order) and order.status != OrderStatus.COMPLETED:
        return OrderStatus.COMPLETED
    return None


def apply_action(
    order: Order,
    segment_id: int,
    stage: StageKind,
    location: str | None,
    action: WorkflowAction,
    actor: Actor,
    comments: str | None = None,
    now: datetime | None = None,
) -> Order:
    """Apply a workflow action and return the updated order.

    Works on a deep copy: when any check fails the caller's order is untouched.
    """
    now = now or datetime.now(timezone.utc)
    comments = (comments or "").strip()

    if action == WorkflowAction.REJECT and not comments:
        raise ValidationError("Comments are required for rejection", code=ErrorCode.COMMENTS_REQUIRED)
    if not can_perform(actor.department, actor.role, stage, action):
        raise PermissionDeniedError(
            f"{actor.full_name or actor.user_id} ({actor.department}) cannot {action.value} {stage.value}"
        )

    updated = order.model_copy(deep=True)
    position, segment = find_segment(updated, segment_id)
    if len(segment.workflow) != STAGE_COUNT:
        segment.workflow = migrate_legacy_workflow(segment)
    target = find_stage(segment, stage, location)

    if action in (WorkflowAction.REJECT, WorkflowAction.CANCEL) and (
        updated.status == OrderStatus.COMPLETED or is_order_completed(updated)
    ):
        raise ConflictError(
            f"Order {order.order_id} cannot be {action.value.lower()}ed after all approval stages have been completed",
            code=ErrorCode.ORDER_COMPLETED,
        )
    revoking_rejection = action == WorkflowAction.REVOKE and updated.status == OrderStatus.REJECTED
    if updated.is_terminal and not revoking_rejection:
        raise ConflictError(
            f"Order {order.order_id} is {updated.status.value}, workflow is closed",
            code=ErrorCode.ORDER_TERMINAL,
        )

    if action in (WorkflowAction.APPROVE, WorkflowAction.REJECT):
        if not is_stage_actionable(updated, segment, target.stage_index):
            raise ConflictError(
                f"Stage {target.stage_index} ({stage.value} at {target.location}) on segment {segment_id} "
                f"is not active for order {order.order_id} in status {updated.status.value}",
                code=ErrorCode.STAGE_NOT_ACTIVE,
            )

    if action == WorkflowAction.APPROVE:
        _approve(updated, position, segment, target, actor, comments, now)
    elif action == WorkflowAction.REJECT:
        _record(target, StageStatus.REJECTED, actor, comments, now)
        segment.status = rejected_marker(stage)
    elif action == WorkflowAction.REVOKE:
        _revoke(segment, target, actor, comments, now)
    elif action == WorkflowAction.CANCEL:
        _record(target, StageStatus.CANCELED, actor, comments or "Order canceled", now)
        segment.status = SEGMENT_CANCELED
        updated.status = OrderStatus.CANCELLED

    logger.info(
        "Workflow %s on order %s segment %d stage %d (%s at %s) by %s (%s)",
        action.value,
        updated.order_id,
        segment_id,
        target.stage_index,
        stage.value,
        target.location,
        actor.full_name,
        actor.department,
    )

    derived = derive_order_status(updated)
    if derived is not None:
        logger.info("Order %s workflow is %s, status %s -> %s", updated.order_id, derived.value, updated.status.value, derived.value)
        updated.status = derived
    updated.updated_at = now
    return updated


def _record(step: WorkflowStage, status: StageStatus, actor: Actor, comments: str, now: datetime) -> None:
    step.status = status
    step.approved_by = actor.full_name or "Unknown"
    step.department = actor.department or "Unknown"
    step.timestamp = now
    step.comments = comments


def _approve(
    order: Order,
    position: int,
    segment: Segment,
    step: WorkflowStage,
    actor: Actor,
    comments: str,
    now: datetime,
) -> None:
    _record(step, StageStatus.APPROVED, actor, comments, now)
    audit = order.audit

    if step.stage == StageKind.SECURITY_ENTRY and audit.vehicle_started_at is None:
        audit.vehicle_started_at = now
        audit.vehicle_started_from = segment.source
        audit.security_entry_at = now
        audit.security_entry_by = actor.full_name
        audit.security_entry_location = step.location
    if step.stage == StageKind.STORES_VERIFICATION and audit.stores_validated_at is None:
        audit.stores_validated_at = now

    is_last_stage = step.stage_index == STAGE_COUNT - 1
    if is_last_stage and position == len(order.segments) - 1:
        audit.vehicle_exited_at = now
        audit.exit_approved_at = now
        audit.exit_approved_by = actor.full_name

    if step.stage == StageKind.SECURITY_ENTRY:
        segment.status = pending_marker(StageKind.STORES_VERIFICATION)
    elif step.stage == StageKind.STORES_VERIFICATION:
        segment.status = pending_marker(StageKind.SECURITY_EXIT)
    elif not is_last_stage:
        # Origin exit hands over to the destination gate.
        segment.status = pending_marker(StageKind.SECURITY_ENTRY)
    else:
        segment.status = SEGMENT_COMPLETED
        if position + 1 < len(order.segments):
            following = order.segments[position + 1]
            if len(following.workflow) != STAGE_COUNT:
                following.workflow = migrate_legacy_workflow(following)
            following.status = pending_marker(StageKind.SECURITY_ENTRY)


def _revoke(segment: Segment, step: WorkflowStage, actor: Actor, comments: str, now: datetime) -> None:
    if step.status != StageStatus.REJECTED:
        raise ConflictError(
            f"Can only revoke rejected stages, stage {step.stage_index} is {step.status.value}",
            code=ErrorCode.INVALID_TRANSITION,
        )
    _record(step, StageStatus.PENDING, actor, comments or "Rejection revoked", now)

    for downstream in segment.workflow[step.stage_index + 1 :]:
        if downstream.status.is_approved:
            logger.info(
                "Resetting downstream stage %d (%s) on segment %d to PENDING",
                downstream.stage_index,
                downstream.stage.value,
                segment.segment_id,
            )
            downstream.status = StageStatus.PENDING
            downstream.approved_by = ""
            downstream.department = ""
            downstream.comments = ""
            downstream.timestamp = now
    segment.status = pending_marker(step.stage)
