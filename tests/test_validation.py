import pytest

from arena_core import EngineConfig, InputSanitizer, ValidationError


def test_submission_request_normalises_language():
    req = InputSanitizer.validate_submission(
        {"problemId": " A ", "code": "print(1)", "language": "Python"}
    )
    assert req.problemId == "A"
    assert req.language == "python"


def test_submission_request_enforces_configured_languages():
    config = EngineConfig(supported_languages=("cpp",))
    with pytest.raises(ValidationError) as excinfo:
        InputSanitizer.validate_submission(
            {"problemId": "A", "code": "print(1)", "language": "python"}, config
        )
    assert "language" in excinfo.value.message


def test_submission_request_enforces_code_limits():
    config = EngineConfig(max_code_length=10)
    with pytest.raises(ValidationError):
        InputSanitizer.validate_submission(
            {"problemId": "A", "code": "x" * 11, "language": "python"}, config
        )
    with pytest.raises(ValidationError):
        InputSanitizer.validate_submission({"problemId": "A", "code": "a\0b", "language": "python"})
    with pytest.raises(ValidationError):
        InputSanitizer.validate_submission({"problemId": "A", "language": "python"})


def test_join_request_normalises_room_code():
    assert InputSanitizer.validate_join({"roomCode": " ab-12cd "}).roomCode == "AB12CD"
    with pytest.raises(ValidationError):
        InputSanitizer.validate_join({"roomCode": "!!"})


def test_sanitize_string_strips_control_characters():
    assert InputSanitizer.sanitize_string("  a\x00b\x07c\nd  ") == "abc\nd"
    assert InputSanitizer.sanitize_string("abcdef", max_length=3) == "abc"


def test_config_defaults_follow_icpc():
    config = EngineConfig()
    assert config.penalty_per_wrong_attempt == 20
    assert config.supported_languages == ("javascript", "python", "java", "cpp")
    assert config.persist_runs is True
    assert config.live_rankings is False


def test_config_from_env_overrides():
    config = EngineConfig.from_env(
        {
            "ARENA_PENALTY_PER_WRONG_ATTEMPT": "10",
            "ARENA_LIVE_RANKINGS": "true",
            "ARENA_SUPPORTED_LANGUAGES": "Python, cpp,python",
            "UNRELATED": "x",
        }
    )
    assert config.penalty_per_wrong_attempt == 10
    assert config.live_rankings is True
    assert config.supported_languages == ("python", "cpp")
    assert config.judge_timeout_seconds == 10.0


def test_config_rejects_out_of_range_values():
    from pydantic import ValidationError as PydanticValidationError

    with pytest.raises(PydanticValidationError):
        EngineConfig(penalty_per_wrong_attempt=-1)
    with pytest.raises(PydanticValidationError):
        EngineConfig(supported_languages=())
