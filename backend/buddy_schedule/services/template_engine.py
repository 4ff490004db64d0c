from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Dict, Any, Tuple, Union
from buddy_schedule.errors import ValidationError
from buddy_schedule.models.shift import Period
import json
import re
import logging

logger = logging.getLogger(__name__)

TIME_FORMAT = "%H:%M"
TIME_PATTERN = re.compile(r"[0-9]{2}:[0-9]{2}")


@dataclass(frozen=True)
class TemplateSlot:
    """One validated slot of a rotation template"""
    dow: int  # 0=Monday .. 6=Sunday
    period: Period
    start: time
    end: time

    @property
    def crosses_midnight(self) -> bool:
        return self.end <= self.start


@dataclass(frozen=True)
class ShiftDraft:
    """Concrete shift produced for one week, not yet persisted"""
    starts_at: datetime
    ends_at: datetime
    period: Period

    @property
    def key(self) -> Tuple[datetime, datetime, Period]:
        return (self.starts_at, self.ends_at, self.period)


class TemplateEngine:
    """Expands a rotation template definition into shift drafts for a given week"""

    def __init__(self, definition: Union[Dict[str, Any], str]):
        """
        Parse and validate a template definition

        Args:
            definition: {"slots": [{"dow": 0, "period": "morning", "start": "08:00", "end": "12:00"}]}
                either as a dict or as its JSON text

        Raises:
            ValidationError: if the definition or any slot is malformed
        """
        self.slots = self.parse_definition(definition)

    @classmethod
    def parse_definition(cls, definition: Union[Dict[str, Any], str]) -> List[TemplateSlot]:
        """
        Validate every slot of the definition, in stored order

        One bad slot rejects the whole definition.
        """
        if isinstance(definition, str):
            try:
                definition = json.loads(definition)
            except json.JSONDecodeError:
                raise ValidationError("template definition is not valid JSON")

        if not isinstance(definition, dict):
            raise ValidationError("template definition must be an object")

        raw_slots = definition.get("slots")
        if not isinstance(raw_slots, list):
            raise ValidationError("template definition must contain a 'slots' list")

        return [cls._parse_slot(index, raw) for index, raw in enumerate(raw_slots)]

    @staticmethod
    def _parse_slot(index: int, raw: Any) -> TemplateSlot:
        if not isinstance(raw, dict):
            raise ValidationError(f"slot {index} must be an object")

        dow = raw.get("dow")
        # bool is an int subclass, reject it explicitly
        if isinstance(dow, bool) or not isinstance(dow, int) or not 0 <= dow <= 6:
            raise ValidationError(f"slot {index}: dow must be an integer 0..6")

        try:
            period = Period(raw.get("period"))
        except ValueError:
            allowed = ", ".join(p.value for p in Period)
            raise ValidationError(f"slot {index}: period must be one of {allowed}")

        start = _parse_time(raw.get("start"), index, "start")
        end = _parse_time(raw.get("end"), index, "end")

        return TemplateSlot(dow=dow, period=period, start=start, end=end)

    def expand(self, week_start: date) -> List[ShiftDraft]:
        """
        Build the drafts for the week that starts on week_start

        week_start is used as given; callers pass the Monday of the target week.
        A slot whose end is not after its start ends on the following day.

        Args:
            week_start: Anchor date (Monday)

        Returns:
            Drafts in slot order, timestamps in UTC
        """
        if isinstance(week_start, datetime):
            week_start = week_start.date()

        drafts = []
        for slot in self.slots:
            day = week_start + timedelta(days=slot.dow)
            starts_at = datetime.combine(day, slot.start, tzinfo=timezone.utc)
            end_day = day + timedelta(days=1) if slot.crosses_midnight else day
            ends_at = datetime.combine(end_day, slot.end, tzinfo=timezone.utc)
            drafts.append(ShiftDraft(starts_at=starts_at, ends_at=ends_at, period=slot.period))

        logger.debug(f"Template expanded for week {week_start}: {len(drafts)} drafts")
        return drafts


def _parse_time(value: Any, index: int, field: str) -> time:
    # strptime alone accepts "8:00" and surrounding whitespace
    if not isinstance(value, str) or not TIME_PATTERN.fullmatch(value):
        raise ValidationError(f"slot {index}: {field} must be HH:MM")
    try:
        return datetime.strptime(value, TIME_FORMAT).time()
    except ValueError:
        raise ValidationError(f"slot {index}: {field} must be HH:MM")


def validate_definition(definition: Union[Dict[str, Any], str]) -> List[TemplateSlot]:
    """Validate a definition without expanding it"""
    return TemplateEngine.parse_definition(definition)


def apply_template(definition: Union[Dict[str, Any], str], week_start: date) -> List[ShiftDraft]:
    """Expand definition into shift drafts anchored at week_start"""
    return TemplateEngine(definition).expand(week_start)
