"""Validated domain records shared by scoring, metrics and storage."""

from .backup import BACKUP_COLLECTIONS, BackupBundle
from .catalog import COLOR_PALETTES, Activity, BuenaObra, CustomResetRule, PersonType, Sin
from .common import DomainModel, new_id
from .enums import (
    AttentionLevel,
    BuenaObraTerm,
    CharityLevel,
    Circunstancias,
    CustomResetUnit,
    DuplicateStrategy,
    FreeformPillar,
    Gravity,
    LabeledEnum,
    Manifestation,
    MateriaTipo,
    Mode,
    MotiveType,
    NoteTargetType,
    ObjectType,
    PurityOfIntention,
    Quality,
    ResetCycle,
    Responsibility,
    SacrificioRelativo,
    Term,
)
from .events import (
    BuenaObraEvent,
    CondicionantesSnapshot,
    ExamSession,
    FreeformEntry,
    OptionalFlags,
    SessionContext,
    SinEvent,
)
from .notes import Note
from .preferences import (
    MetricsCalibration,
    SleepWindow,
    SubjectProfile,
    UserPreferences,
    UserState,
)

__all__ = [
    "Activity",
    "AttentionLevel",
    "BACKUP_COLLECTIONS",
    "BackupBundle",
    "BuenaObra",
    "BuenaObraEvent",
    "BuenaObraTerm",
    "COLOR_PALETTES",
    "CharityLevel",
    "Circunstancias",
    "CondicionantesSnapshot",
    "CustomResetRule",
    "CustomResetUnit",
    "DomainModel",
    "DuplicateStrategy",
    "ExamSession",
    "FreeformEntry",
    "FreeformPillar",
    "Gravity",
    "LabeledEnum",
    "Manifestation",
    "MateriaTipo",
    "MetricsCalibration",
    "Mode",
    "MotiveType",
    "Note",
    "NoteTargetType",
    "ObjectType",
    "OptionalFlags",
    "PersonType",
    "PurityOfIntention",
    "Quality",
    "ResetCycle",
    "Responsibility",
    "SacrificioRelativo",
    "SessionContext",
    "Sin",
    "SinEvent",
    "SleepWindow",
    "SubjectProfile",
    "Term",
    "UserPreferences",
    "UserState",
    "new_id",
]
