"""Candidate and role profile models for the Voice Interviewer."""

from typing import List

from pydantic import Field, validator

from .base import FrozenModel


class CandidateProfile(FrozenModel):
    """Signals extracted from a resume, fixed for the whole session."""

    skills: List[str] = Field(default_factory=list, description="Known skills mentioned in the resume")
    years_experience: float = Field(default=0.0, ge=0.0, description="Total years of experience")
    project_mentions: List[str] = Field(default_factory=list, max_length=5, description="Project-like resume lines")

    def has_skill(self, skill: str) -> bool:
        """Check whether the resume mentions a skill."""
        return skill.lower() in (s.lower() for s in self.skills)


class RoleProfile(FrozenModel):
    """Signals extracted from a job description, fixed for the whole session."""

    required_skills: List[str] = Field(default_factory=list, description="Skills flagged as required")
    nice_to_have_skills: List[str] = Field(default_factory=list, description="Skills flagged as optional")
    responsibilities: List[str] = Field(default_factory=list, max_length=6, description="Responsibility sentences")

    @validator("required_skills", "nice_to_have_skills")
    def deduplicate_skills(cls, v):
        seen = []
        for skill in v:
            if skill not in seen:
                seen.append(skill)
        return seen

    def shared_skills(self, candidate: CandidateProfile) -> List[str]:
        """Required skills the candidate already lists, in candidate order."""
        required = set(self.required_skills)
        return [skill for skill in candidate.skills if skill in required]

    def gap_skills(self, candidate: CandidateProfile) -> List[str]:
        """Required skills absent from the resume, in role order."""
        owned = set(candidate.skills)
        return [skill for skill in self.required_skills if skill not in owned]
