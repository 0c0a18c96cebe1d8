"""
Template preset validation, storage and instantiation.

Two entry points with opposite error handling:

- validate_template_presets_input() guards writes and raises
  TemplatePresetError with a user-facing message.
- parse_stored_template_presets() reads whatever is in the database and
  falls back to empty presets on any problem.
"""
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional
import json
import logging

from sqlmodel import Session

from dispatch_app.models.recurrence_rule import RecurrenceType
from dispatch_app.models.user import User
from dispatch_app.schemas.template_preset import TaskTemplatePreset, TemplatePresets, TextTemplatePreset
from dispatch_app.services.recurrence import (
    coerce_recurrence_type,
    normalize_recurrence_behavior,
    parse_custom_rule,
    serialize_custom_rule,
)
from dispatch_app.services.templates import ReferenceDate, render_template

logger = logging.getLogger(__name__)

MAX_PRESETS_PER_KIND = 50


class TemplatePresetError(ValueError):
    """A template preset payload was rejected."""


def _ensure_string(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise TemplatePresetError(f"{field} must be a string")
    return value.strip()


def _parse_task_preset(value: Any) -> TaskTemplatePreset:
    if not isinstance(value, Mapping):
        raise TemplatePresetError("task template entry must be an object")

    preset_id = _ensure_string(value.get("id"), "task template id")
    name = _ensure_string(value.get("name"), "task template name")
    title = _ensure_string(value.get("title"), "task template title")
    description = value.get("description")
    if not isinstance(description, str):
        description = ""

    if not preset_id:
        raise TemplatePresetError("task template id is required")
    if not name:
        raise TemplatePresetError("task template name is required")
    if not title:
        raise TemplatePresetError("task template title is required")

    recurrence_type = coerce_recurrence_type(value.get("recurrenceType")) or RecurrenceType.NONE
    behavior = normalize_recurrence_behavior(recurrence_type, value.get("recurrenceBehavior"))

    recurrence_rule = None
    if recurrence_type == RecurrenceType.CUSTOM:
        parsed = parse_custom_rule(value.get("recurrenceRule"))
        if parsed is None:
            raise TemplatePresetError("task template custom recurrence requires a valid recurrenceRule")
        recurrence_rule = serialize_custom_rule(parsed)

    return TaskTemplatePreset(
        id=preset_id,
        name=name,
        title=title,
        description=description,
        recurrence_type=recurrence_type.value,
        recurrence_behavior=behavior.value,
        recurrence_rule=recurrence_rule,
    )


def _parse_text_preset(value: Any, kind: str) -> TextTemplatePreset:
    if not isinstance(value, Mapping):
        raise TemplatePresetError(f"{kind} template entry must be an object")

    preset_id = _ensure_string(value.get("id"), f"{kind} template id")
    name = _ensure_string(value.get("name"), f"{kind} template name")
    content = _ensure_string(value.get("content"), f"{kind} template content")

    if not preset_id:
        raise TemplatePresetError(f"{kind} template id is required")
    if not name:
        raise TemplatePresetError(f"{kind} template name is required")

    return TextTemplatePreset(id=preset_id, name=name, content=content)


def _ensure_limit(items: List[Any], kind: str) -> List[Any]:
    if len(items) > MAX_PRESETS_PER_KIND:
        raise TemplatePresetError(f"{kind} templates exceed the limit of {MAX_PRESETS_PER_KIND}")
    return items


def _build_presets(tasks_raw: list, notes_raw: list, dispatches_raw: list) -> TemplatePresets:
    return TemplatePresets(
        tasks=_ensure_limit([_parse_task_preset(entry) for entry in tasks_raw], "task"),
        notes=_ensure_limit([_parse_text_preset(entry, "note") for entry in notes_raw], "note"),
        dispatches=_ensure_limit([_parse_text_preset(entry, "dispatch") for entry in dispatches_raw], "dispatch"),
    )


def empty_template_presets() -> TemplatePresets:
    return TemplatePresets(tasks=[], notes=[], dispatches=[])


def validate_template_presets_input(value: Any) -> TemplatePresets:
    """
    Validate a presets payload submitted by the user.

    Raises:
        TemplatePresetError: If the payload or any entry is malformed
    """
    if not isinstance(value, Mapping):
        raise TemplatePresetError("templatePresets must be an object")

    tasks_raw = value.get("tasks")
    notes_raw = value.get("notes")
    dispatches_raw = value.get("dispatches")
    if not all(isinstance(raw, list) for raw in (tasks_raw, notes_raw, dispatches_raw)):
        raise TemplatePresetError("templatePresets must include tasks, notes, and dispatches arrays")

    return _build_presets(tasks_raw, notes_raw, dispatches_raw)


def parse_stored_template_presets(value: Any) -> TemplatePresets:
    """Read presets from storage; anything malformed yields empty presets."""
    if not value:
        return empty_template_presets()

    try:
        parsed = json.loads(value) if isinstance(value, str) else value
    except ValueError:
        return empty_template_presets()
    if not isinstance(parsed, Mapping):
        return empty_template_presets()

    def as_list(raw: Any) -> list:
        return raw if isinstance(raw, list) else []

    try:
        return _build_presets(
            as_list(parsed.get("tasks")),
            as_list(parsed.get("notes")),
            as_list(parsed.get("dispatches")),
        )
    except TemplatePresetError as e:
        logger.warning(f"Ignoring stored template presets: {e}")
        return empty_template_presets()


def serialize_template_presets(presets: TemplatePresets) -> str:
    return json.dumps(presets.model_dump(by_alias=True))


def instantiate_task_preset(
    preset: TaskTemplatePreset,
    reference_date: ReferenceDate = None,
    time_zone: Optional[str] = None,
) -> Dict[str, Any]:
    """Render a task preset into create-task fields."""
    return {
        "title": render_template(preset.title, reference_date, time_zone),
        "description": render_template(preset.description, reference_date, time_zone),
        "recurrence_type": preset.recurrence_type,
        "recurrence_behavior": preset.recurrence_behavior,
        "recurrence_rule": preset.recurrence_rule,
    }


def instantiate_text_preset(
    preset: TextTemplatePreset,
    reference_date: ReferenceDate = None,
    time_zone: Optional[str] = None,
) -> str:
    """Render a note or dispatch preset body."""
    return render_template(preset.content, reference_date, time_zone)


class TemplatePresetService:
    """Load and store a user's template presets."""

    def __init__(self, session: Session):
        self.session = session

    def get_presets(self, user_id: str) -> TemplatePresets:
        user = self.session.get(User, user_id)
        if not user:
            return empty_template_presets()
        return parse_stored_template_presets(user.template_presets)

    def save_presets(self, user_id: str, payload: Any) -> Optional[TemplatePresets]:
        """Validate and replace the user's presets. Returns None if the user is unknown."""
        presets = validate_template_presets_input(payload)
        user = self.session.get(User, user_id)
        if not user:
            return None

        user.template_presets = serialize_template_presets(presets)
        user.updated_at = datetime.utcnow()
        self.session.add(user)
        self.session.commit()
        logger.info(
            f"Saved template presets for user {user_id}: "
            f"{len(presets.tasks)} task, {len(presets.notes)} note, {len(presets.dispatches)} dispatch"
        )
        return presets

    def find_task_preset(self, user_id: str, preset_id: str) -> Optional[TaskTemplatePreset]:
        presets = self.get_presets(user_id)
        return next((preset for preset in presets.tasks if preset.id == preset_id), None)

    def find_text_preset(self, user_id: str, kind: str, preset_id: str) -> Optional[TextTemplatePreset]:
        """Look up a note or dispatch preset. Unknown kinds find nothing."""
        if kind not in ("notes", "dispatches"):
            return None
        presets = getattr(self.get_presets(user_id), kind)
        return next((preset for preset in presets if preset.id == preset_id), None)
