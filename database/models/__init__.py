from .base import Base, JSONType, utcnow
from .enums import ProcessingStage, DiffType, DecisionType, ProfileSource
from .stream import ResumeStream, ResumeVersion
from .entity import ParsedEntity, EntryEnrichment, CareerNarrative
from .profile import ConfirmedProfileEntry
from .review import ResumeDiff, MergeDecision

__all__ = [
    'Base',
    'JSONType',
    'utcnow',
    'ProcessingStage',
    'DiffType',
    'DecisionType',
    'ProfileSource',
    'ResumeStream',
    'ResumeVersion',
    'ParsedEntity',
    'EntryEnrichment',
    'CareerNarrative',
    'ConfirmedProfileEntry',
    'ResumeDiff',
    'MergeDecision',
]
