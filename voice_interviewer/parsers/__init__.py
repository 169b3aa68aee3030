"""Parsers package for resume and job description profiles."""

from .profile_extractor import (
    ProfileExtractor,
    extract_projects,
    extract_skills,
    extract_years_of_experience,
    mentions_skill,
    normalize_text,
    parse_job_description,
    parse_resume,
)

__all__ = [
    "ProfileExtractor",
    "extract_projects",
    "extract_skills",
    "extract_years_of_experience",
    "mentions_skill",
    "normalize_text",
    "parse_job_description",
    "parse_resume",
]
