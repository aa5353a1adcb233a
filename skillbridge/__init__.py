"""SkillBridge: peer skill exchange engine."""

__version__ = "0.1.0"
