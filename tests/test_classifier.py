import pytest

from steward.classifier import (
    ARCHETYPE_KEYWORDS,
    ARCHETYPES,
    DEFAULT_ARCHETYPE,
    DEPLOYMENT_GUIDANCE,
    classify,
    deployment_guidance,
)


def test_api_takes_precedence_over_web() -> None:
    assert classify({"api", "web"}) == "api"
    assert classify(["web", "api"]) == "api"


def test_empty_topics_use_default_archetype() -> None:
    assert classify(set()) == DEFAULT_ARCHETYPE == "generic"


def test_topics_are_lower_cased() -> None:
    assert classify(["Android"]) == "mobile"
    assert classify(["  CLI "]) == "console"


def test_unknown_topics_fall_back_to_generic() -> None:
    assert classify(["needs-readme", "internal"]) == "generic"


def test_overlapping_keyword_goes_to_first_declared_archetype() -> None:
    # "backend" is listed under both api and service.
    assert classify({"backend"}) == "api"
    assert classify({"server", "gui"}) == "service"


@pytest.mark.parametrize(
    ("topics", "expected"),
    [
        ({"react"}, "web"),
        ({"daemon"}, "service"),
        ({"electron"}, "desktop"),
        ({"flutter"}, "mobile"),
        ({"sdk"}, "library"),
        ({"terminal"}, "console"),
    ],
)
def test_each_archetype_is_reachable(topics: set[str], expected: str) -> None:
    assert classify(topics) == expected


def test_priority_order_is_fixed() -> None:
    assert [name for name, _ in ARCHETYPE_KEYWORDS] == [
        "api",
        "web",
        "service",
        "desktop",
        "mobile",
        "library",
        "console",
    ]


def test_every_archetype_has_guidance() -> None:
    assert set(ARCHETYPES) == set(DEPLOYMENT_GUIDANCE)
    assert deployment_guidance("unknown") == DEPLOYMENT_GUIDANCE["generic"]
