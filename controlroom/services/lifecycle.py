"""
Policy lifecycle rules.

Pure functions over policy records: field normalization and validation,
status transitions, pending-change staging, and visibility/edit checks.
PolicyService applies these against the database.

    draft ──submit──> pending_review ──publish──> active ──archive──> archived
      └──────────────publish (admin)────────────────┘ ^                  │
                                                      └─────publish──────┘

Edits to an active policy are staged in pending_changes until published.
"""

from typing import Any, Iterable, Optional

from controlroom.config import PolicyRulesConfig
from controlroom.models.policy import Policy, PolicyStatus
from controlroom.models.user import User
from controlroom.services.errors import ValidationError


ALL_ORGANIZATIONS = "all"

EDITABLE_FIELDS = (
    "title",
    "description",
    "content",
    "category",
    "organization",
    "tags",
    "attachments",
    "require_signature",
)

REQUIRED_FIELDS = ("title", "category", "organization", "description")

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 500

ALLOWED_TRANSITIONS = {
    PolicyStatus.DRAFT: {PolicyStatus.PENDING_REVIEW, PolicyStatus.ACTIVE},
    PolicyStatus.PENDING_REVIEW: {PolicyStatus.PENDING_REVIEW, PolicyStatus.ACTIVE},
    PolicyStatus.ACTIVE: {PolicyStatus.ACTIVE, PolicyStatus.ARCHIVED},
    PolicyStatus.ARCHIVED: {PolicyStatus.ACTIVE},
}

STATUS_LABELS = {
    PolicyStatus.DRAFT: "Draft",
    PolicyStatus.PENDING_REVIEW: "Pending Review",
    PolicyStatus.ACTIVE: "Published",
    PolicyStatus.ARCHIVED: "Archived",
}
PENDING_CHANGES_LABEL = "Pending Changes"


# ============== Field handling ==============

def normalize_tags(value: Any) -> list[str]:
    """Accept a comma separated string or a list; return trimmed unique tags."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")

    tags = []
    for tag in value:
        tag = str(tag).strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def normalize_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Keep only editable fields and normalize their values."""
    normalized = {}
    for key in EDITABLE_FIELDS:
        if key not in fields:
            continue
        value = fields[key]
        if key == "tags":
            value = normalize_tags(value)
        elif key == "require_signature":
            value = bool(value)
        elif key == "attachments":
            value = [dict(a) for a in (value or [])]
        elif value is None:
            value = ""
        elif isinstance(value, str):
            value = value.strip()
        normalized[key] = value
    return normalized


def validate_policy_fields(values: dict[str, Any], rules: PolicyRulesConfig) -> None:
    """
    Validate a complete set of policy field values.

    Raises:
        ValidationError: listing every missing field, or the first invalid one.
    """
    missing = [key for key in REQUIRED_FIELDS if not values.get(key)]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            fields=missing,
        )

    if not values.get("content") and not values.get("attachments"):
        raise ValidationError(
            "Either content or attachments are required",
            fields=["content", "attachments"],
        )

    if len(values["title"]) > MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title cannot be more than {MAX_TITLE_LENGTH} characters", field="title"
        )

    if len(values["description"]) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Description cannot be more than {MAX_DESCRIPTION_LENGTH} characters",
            field="description",
        )

    if values["category"] not in rules.categories:
        raise ValidationError(f"Invalid category: {values['category']}", field="category")

    organization = values["organization"]
    if organization != ALL_ORGANIZATIONS and organization not in rules.organizations:
        raise ValidationError(f"Invalid organization: {organization}", field="organization")

    for attachment in values.get("attachments") or []:
        if not attachment.get("file_name") or not attachment.get("file_url"):
            raise ValidationError(
                "Attachments require file_name and file_url", field="attachments"
            )


def live_values(policy: Policy) -> dict[str, Any]:
    """The published (or current draft) field values of a policy."""
    return {key: getattr(policy, key) for key in EDITABLE_FIELDS}


def effective_values(policy: Policy) -> dict[str, Any]:
    """Live values overlaid with any staged changes."""
    values = live_values(policy)
    values.update(policy.pending_changes or {})
    return values


def stage_changes(policy: Policy, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
    """
    Merge changes into the pending set of a published policy.

    Values equal to the live value are dropped, so a change that is reverted
    disappears from the pending set.

    Returns:
        The new pending_changes mapping, or None if nothing differs.
    """
    live = live_values(policy)
    pending = dict(policy.pending_changes or {})
    pending.update(changes)

    staged = {key: value for key, value in pending.items() if live.get(key) != value}
    return staged or None


# ============== Status ==============

def check_transition(current: PolicyStatus, target: PolicyStatus) -> None:
    """Raise ValidationError if the status change is not allowed."""
    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ValidationError(
            f"Cannot move policy from {current.value} to {target.value}",
            field="status",
        )


def display_status(status: PolicyStatus, pending_changes: Optional[dict] = None) -> str:
    """Human readable status; active policies with staged edits show as pending."""
    if status == PolicyStatus.ACTIVE and pending_changes:
        return PENDING_CHANGES_LABEL
    return STATUS_LABELS[status]


def requires_signature(policy: Policy) -> bool:
    """Only published policies flagged for acknowledgement can be signed."""
    return policy.status == PolicyStatus.ACTIVE and bool(policy.require_signature)


# ============== Access ==============

def is_participant(policy: Policy, user: User) -> bool:
    """Creator or assigned reviewer."""
    return policy.created_by == user.id or user.id in (policy.assigned_users or [])


def can_view(policy: Policy, user: User) -> bool:
    if user.is_admin or is_participant(policy, user):
        return True
    return (
        policy.status == PolicyStatus.ACTIVE
        and policy.organization in (ALL_ORGANIZATIONS, user.organization)
    )


def can_edit(policy: Policy, user: User) -> bool:
    return user.is_admin or is_participant(policy, user)


def merge_assignees(current: Iterable[str], added: Iterable[str]) -> list[str]:
    """Append new user ids, preserving order and skipping duplicates."""
    merged = list(current or [])
    for user_id in added:
        if user_id not in merged:
            merged.append(user_id)
    return merged
