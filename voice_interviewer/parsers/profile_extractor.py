"""Rule-based extraction of candidate and role profiles from free text."""

import re
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from ..constants import (
    MAX_PROJECT_MENTIONS,
    MAX_RESPONSIBILITIES,
    NICE_TO_HAVE_MARKERS,
    PROJECT_MARKERS,
    REQUIRED_MARKERS,
    SKILL_KEYWORDS,
)
from ..models.profile import CandidateProfile, RoleProfile
from ..utils.logging import get_logger

_YEARS_PATTERN = re.compile(r"(\d{1,2})\+?\s*(years|yrs)", re.IGNORECASE)
_SENTENCE_SPLIT = re.compile(r"[.!?\n]")
_RESPONSIBILITY_PATTERN = re.compile(r"build|design|deliver|own|improve|lead|collaborate", re.IGNORECASE)

_skill_patterns: Dict[str, Pattern] = {}


def _skill_pattern(skill: str) -> Pattern:
    pattern = _skill_patterns.get(skill)
    if pattern is None:
        pattern = re.compile(rf"\b{re.escape(skill)}\b", re.IGNORECASE)
        _skill_patterns[skill] = pattern
    return pattern


def _unique(values: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def normalize_text(text: Optional[str]) -> str:
    """Lower-case text and collapse all whitespace runs to single spaces."""
    return re.sub(r"\s+", " ", str(text or "").lower().replace("\r", " ")).strip()


def split_sentences(text: Optional[str]) -> List[str]:
    return [s.strip() for s in _SENTENCE_SPLIT.split(str(text or "")) if s.strip()]


def mentions_skill(text: str, skill: str) -> bool:
    return bool(_skill_pattern(skill).search(text))


def extract_skills(text: Optional[str], vocabulary: Optional[List[str]] = None) -> List[str]:
    """Extract known skills from text using word-bounded keyword matching.

    Args:
        text: Free text to scan
        vocabulary: Skill keywords to look for, defaults to SKILL_KEYWORDS

    Returns:
        Matched skills in vocabulary order
    """
    normalized = normalize_text(text)
    if not normalized:
        return []
    return [skill for skill in (vocabulary or SKILL_KEYWORDS) if mentions_skill(normalized, skill)]


def extract_years_of_experience(text: Optional[str]) -> float:
    match = _YEARS_PATTERN.search(normalize_text(text))
    if not match:
        return 0.0
    return float(int(match.group(1)))


def extract_projects(text: Optional[str]) -> List[str]:
    """Return resume lines that look like project claims."""
    lines = [line.strip() for line in str(text or "").split("\n") if line.strip()]
    project_lines = [
        line for line in lines
        if any(marker in line.lower() for marker in PROJECT_MARKERS)
    ]
    return _unique(project_lines)[:MAX_PROJECT_MENTIONS]


def _classify_jd_skill(sentence: str, skill: str) -> Optional[str]:
    normalized = normalize_text(sentence)
    if not mentions_skill(normalized, skill):
        return None
    if any(marker in normalized for marker in REQUIRED_MARKERS):
        return "required"
    if any(marker in normalized for marker in NICE_TO_HAVE_MARKERS):
        return "nice_to_have"
    return "neutral"


def parse_resume(text: Optional[str]) -> CandidateProfile:
    """Parse resume text into a CandidateProfile. Never raises."""
    return CandidateProfile(
        skills=extract_skills(text),
        years_experience=extract_years_of_experience(text),
        project_mentions=extract_projects(text),
    )


def parse_job_description(text: Optional[str]) -> RoleProfile:
    """Parse job description text into a RoleProfile.

    A skill is required when a sentence mentioning it carries a required
    marker, nice-to-have when it carries an optional marker, and ignored
    otherwise.
    """
    sentences = split_sentences(text)
    required: List[str] = []
    nice_to_have: List[str] = []

    for sentence in sentences:
        for skill in SKILL_KEYWORDS:
            category = _classify_jd_skill(sentence, skill)
            if category == "required":
                required.append(skill)
            elif category == "nice_to_have":
                nice_to_have.append(skill)

    responsibilities = _unique(s for s in sentences if _RESPONSIBILITY_PATTERN.search(s))

    return RoleProfile(
        required_skills=_unique(required),
        nice_to_have_skills=_unique(nice_to_have),
        responsibilities=responsibilities[:MAX_RESPONSIBILITIES],
    )


class ProfileExtractor:
    """Extracts both profiles for a session and logs what was found."""

    def __init__(self):
        self.name = "ProfileExtractor"
        self.logger = get_logger(f"parser.{self.name}")

    def extract(self, resume_text: Optional[str], jd_text: Optional[str]) -> Tuple[CandidateProfile, RoleProfile]:
        candidate = parse_resume(resume_text)
        role = parse_job_description(jd_text)

        if not candidate.skills and not candidate.project_mentions:
            self.logger.info("No resume signals found; plan will use generic questions")
        self.logger.debug(
            f"Extracted {len(candidate.skills)} resume skills, "
            f"{len(role.required_skills)} required and {len(role.nice_to_have_skills)} optional role skills"
        )
        return candidate, role
