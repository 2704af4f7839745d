import pytest
from app.core.classification import normalize, normalize_priority, parse_classifier_output
from app.core.exceptions import ClassifierResponseError
from app.schemas.classification import ClassifierResult
from app.schemas.ticket import PriorityEnum


def test_parse_plain_json_with_camel_case_keys():
    result = parse_classifier_output(
        '{"priority": "high", "helpfulNotes": "Reset the session", "relatedSkills": ["Auth", "React"]}'
    )

    assert result.priority == "high"
    assert result.helpful_notes == "Reset the session"
    assert result.related_skills == ["Auth", "React"]


def test_parse_fenced_json_with_short_keys():
    text = '```json\n{"priority": "low", "notes": "n/a", "skills": ["billing"]}\n```'

    result = parse_classifier_output(text)

    assert result.priority == "low"
    assert result.helpful_notes == "n/a"
    assert result.related_skills == ["billing"]


@pytest.mark.parametrize("text", ["", "   ", "not json", '["high"]', '"high"'])
def test_parse_rejects_unusable_replies(text):
    with pytest.raises(ClassifierResponseError):
        parse_classifier_output(text)


def test_malformed_fields_are_dropped():
    result = ClassifierResult.model_validate({"priority": 3, "helpfulNotes": {"x": 1}, "relatedSkills": "auth, sso"})

    assert result.priority is None
    assert result.helpful_notes is None
    assert result.related_skills == ["auth", " sso"]


@pytest.mark.parametrize("value,case_sensitive,expected", [
    ("low", False, PriorityEnum.LOW),
    ("critical", True, PriorityEnum.CRITICAL),
    ("HIGH", False, PriorityEnum.HIGH),
    (" Medium ", False, PriorityEnum.MEDIUM),
    ("HIGH", True, PriorityEnum.MEDIUM),
    ("hight", False, PriorityEnum.MEDIUM),
    ("urgent", False, PriorityEnum.MEDIUM),
    (None, False, PriorityEnum.MEDIUM),
])
def test_normalize_priority(value, case_sensitive, expected):
    assert normalize_priority(value, case_sensitive) == expected


def test_normalize_cleans_skills_and_notes():
    classification = normalize(ClassifierResult(priority="HIGH", related_skills=[" auth ", "", "auth", "SSO"]))

    assert classification.priority == PriorityEnum.HIGH
    assert classification.helpful_notes == ""
    assert classification.related_skills == ["auth", "SSO"]


def test_normalize_empty_result_gives_defaults():
    classification = normalize(None)

    assert classification.priority == PriorityEnum.MEDIUM
    assert classification.helpful_notes == ""
    assert classification.related_skills == []
