"""Pydantic models for the scheduling engine."""

from timebox.models.backlog import BacklogItem, BacklogItemCreate, BacklogItemUpdate
from timebox.models.box import ActivityLogEntry, Interval, TimeBox, TimeBoxCreate, TimeBoxMetaUpdate
from timebox.models.enums import BoxStatus, EnergyLevel, LogEvent, Urgency
from timebox.models.schedule_settings import ScheduleSettings, ScheduleSettingsUpdate

__all__ = [
    "ActivityLogEntry",
    "BacklogItem",
    "BacklogItemCreate",
    "BacklogItemUpdate",
    "BoxStatus",
    "EnergyLevel",
    "Interval",
    "LogEvent",
    "ScheduleSettings",
    "ScheduleSettingsUpdate",
    "TimeBox",
    "TimeBoxCreate",
    "TimeBoxMetaUpdate",
    "Urgency",
]
