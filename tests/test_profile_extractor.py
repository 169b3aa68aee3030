"""Unit tests for resume and job description profile extraction."""
from voice_interviewer.parsers.profile_extractor import (
    ProfileExtractor,
    extract_projects,
    extract_skills,
    extract_years_of_experience,
    normalize_text,
    parse_job_description,
    parse_resume,
)

from conftest import JOB_DESCRIPTION, RESUME


def test_normalize_collapses_whitespace():
    assert normalize_text("  React\r\n\tand   NODE ") == "react and node"
    assert normalize_text(None) == ""


def test_skills_are_word_bounded_and_in_vocabulary_order():
    assert extract_skills("TypeScript and React, some Java") == ["react", "typescript", "java"]
    # "javascript" must not count as "java"
    assert extract_skills("JavaScript only") == ["javascript"]
    assert extract_skills("") == []


def test_years_of_experience():
    assert extract_years_of_experience("Over 7+ years building APIs") == 7.0
    assert extract_years_of_experience("3 yrs of Go") == 3.0
    assert extract_years_of_experience("no numbers here") == 0.0


def test_projects_are_deduplicated_and_capped():
    text = "\n".join(["Built a thing"] * 3 + [f"Project {i}" for i in range(10)])
    projects = extract_projects(text)
    assert projects[0] == "Built a thing"
    assert len(projects) == 5


def test_parse_resume():
    profile = parse_resume(RESUME)
    assert profile.skills == ["react", "typescript", "graphql", "docker", "ci/cd"]
    assert profile.years_experience == 4.0
    assert profile.project_mentions == [
        "Built a design system used by 12 product teams.",
        "Implemented CI/CD pipelines with Docker.",
    ]


def test_parse_job_description_splits_required_and_optional():
    role = parse_job_description(JOB_DESCRIPTION)
    assert role.required_skills == ["react", "typescript", "kubernetes"]
    assert role.nice_to_have_skills == ["aws"]
    assert role.responsibilities == ["You will design and deliver accessible user interfaces"]


def test_empty_inputs_give_empty_profiles():
    candidate, role = ProfileExtractor().extract(None, "")
    assert candidate.skills == []
    assert candidate.years_experience == 0.0
    assert role.required_skills == []
    assert role.responsibilities == []


def test_extraction_is_deterministic():
    extractor = ProfileExtractor()
    assert extractor.extract(RESUME, JOB_DESCRIPTION) == extractor.extract(RESUME, JOB_DESCRIPTION)
