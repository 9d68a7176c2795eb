from metricreporter.metrics.tags import Tags, merge


def test_merge_call_site_tags_override_global_tags() -> None:
    merged = merge({"a": "1", "b": "2"}, {"b": "3", "c": "4"})
    assert merged.as_dict() == {"a": "1", "b": "3", "c": "4"}
    assert merged.keys() == ("a", "b", "c")


def test_tags_are_order_independent_and_hashable() -> None:
    first = Tags.of({"route": "/x", "env": "prod"})
    second = Tags((("env", "prod"), ("route", "/x")))
    assert first == second
    assert hash(first) == hash(second)
    assert str(first) == "env=prod,route=/x"


def test_tags_of_accepts_tags_mapping_and_none() -> None:
    tags = Tags.of({"code": 200})
    assert Tags.of(tags) is tags
    assert tags.as_dict() == {"code": "200"}
    assert Tags.of(None) == Tags.empty()
    assert not Tags.empty()
    assert len(tags) == 1
