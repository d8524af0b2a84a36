import pytest

from survey_core.filters import FilterSelection
from survey_core.url_state import UrlState, parse_url_state, to_query_string


def test_round_trip_multi_selection():
    filters = {"age": FilterSelection.multi(["30-40", "41-50"])}
    decoded = parse_url_state(to_query_string("phaco", filters))
    assert decoded == UrlState(topic="phaco", filters={"age": FilterSelection.multi(["30-40", "41-50"])})


def test_encode_topic_only():
    assert to_query_string("phaco", {}) == "topic=phaco"


def test_encode_every_mode():
    qs = to_query_string(
        "phaco",
        {
            "a": FilterSelection.all(),
            "b": FilterSelection.single("x y"),
            "c": FilterSelection.multi(["1", "2"]),
            "d": FilterSelection.single(None),
            "e": FilterSelection.multi([]),
        },
    )
    assert qs == "topic=phaco&f_a=all&f_b=x+y&f_c=1%2C2&f_d=all&f_e="


def test_decode_modes_and_ignores_unrelated_keys():
    decoded = parse_url_state("?topic=glaucoma&f_a=&f_b=all&f_c=one&f_d=x,%20y,,&utm_source=mail")
    assert decoded.topic == "glaucoma"
    assert decoded.filters == {
        "a": FilterSelection.all(),
        "b": FilterSelection.all(),
        "c": FilterSelection.single("one"),
        "d": FilterSelection.multi(["x", "y"]),
    }


def test_decode_without_topic():
    assert parse_url_state("") == UrlState(topic=None, filters={})
    assert parse_url_state("f_age=30-40").topic is None


def test_decode_keeps_unknown_filter_ids_and_last_duplicate_wins():
    decoded = parse_url_state("topic=a&topic=b&f_zzz=1&f_zzz=2")
    assert decoded.topic == "a"
    assert decoded.filters == {"zzz": FilterSelection.single("2")}


def test_empty_multi_decodes_as_all():
    decoded = parse_url_state(to_query_string("phaco", {"age": FilterSelection.multi([])}))
    assert decoded.filters["age"] == FilterSelection.all()


def test_comma_inside_single_value_is_a_known_gap():
    decoded = parse_url_state(to_query_string("phaco", {"city": FilterSelection.single("Paris, FR")}))
    assert decoded.filters["city"] == FilterSelection.multi(["Paris", "FR"])


@pytest.mark.parametrize(
    "topic, filters",
    [
        ("phaco", {}),
        ("retina", {"age": FilterSelection.all()}),
        ("refractive_surgery", {"region": FilterSelection.single("Western Europe")}),
        ("glaucoma", {"age": FilterSelection.multi(["< 30", "> 60"]), "region": FilterSelection.single("US & Canada")}),
        ("ocular surface", {"setting": FilterSelection.multi(["Public hospital", "Private clinic", "University"])}),
    ],
)
def test_round_trip_law(topic, filters):
    assert parse_url_state(to_query_string(topic, filters)) == UrlState(topic=topic, filters=filters)


def test_round_trip_is_idempotent():
    filters = {"age": FilterSelection.multi(["30-40", "41-50"]), "region": FilterSelection.single("EU")}
    once = to_query_string("phaco", filters)
    decoded = parse_url_state(once)
    assert to_query_string(decoded.topic, decoded.filters) == once
