import pytest

from survey_core.aggregate import DistRow
from survey_core.charts import (
    accent_for,
    chart_frame,
    export_chart_png,
    export_file_name,
    nice_ceiling,
    overlay_bar_chart,
    to_vega_spec,
    wrap_label,
)

BASELINE = [DistRow("Yes", "Yes", 3, 60.0), DistRow("No", "No", 2, 40.0)]
FILTERED = [DistRow("Yes", "Yes", 1, 33.3333), DistRow("No", "No", 2, 66.6667)]


@pytest.mark.parametrize("value, ceiling", [(0, 10), (10, 10), (10.5, 20), (55, 60), (61, 75), (75.01, 100), (100, 100)])
def test_nice_ceiling(value, ceiling):
    assert nice_ceiling(value) == ceiling


def test_wrap_label_keeps_hyphen_with_word():
    assert wrap_label("Wavefront-optimized") == ["Wavefront-", "optimized"]
    assert wrap_label("Yes") == ["Yes"]
    assert wrap_label("") == []


def test_wrap_label_hard_splits_long_words():
    assert wrap_label("supercalifragilisticexpialidocious") == ["supercalifragilis-", "ticexpialidocious"]


def test_wrap_label_truncates_with_ellipsis():
    assert wrap_label("one two three four five six", max_chars=9, max_lines=2) == ["one two", "three…"]


def test_accent_for():
    assert accent_for("glaucoma") == "#ef4444"
    assert accent_for("unknown") == "#2563eb"


def test_chart_frame_zips_by_label_and_rounds():
    df = chart_frame(BASELINE, FILTERED)
    assert df["label"].tolist() == ["Yes", "No"]
    assert df["filtered_pct"].tolist() == [33.33, 66.67]
    assert df["filtered_n"].tolist() == [1, 2]


def test_overlay_layers():
    shown = to_vega_spec(overlay_bar_chart(BASELINE, FILTERED, accent="#ef4444"))
    assert len(shown["layer"]) == 3
    hidden = to_vega_spec(overlay_bar_chart(BASELINE, FILTERED, show_overlay=False))
    assert len(hidden["layer"]) == 1
    no_counts = to_vega_spec(overlay_bar_chart(BASELINE, FILTERED, show_n_on_bars=False))
    assert len(no_counts["layer"]) == 2


def test_overlay_chart_with_no_rows():
    spec = to_vega_spec(overlay_bar_chart([], []))
    assert spec["layer"][0]["encoding"]["y"]["scale"]["domain"] == [0, 10]


def test_export_file_name():
    assert export_file_name("phaco") == "escrs_phaco.png"


def test_export_chart_png():
    pytest.importorskip("vl_convert")
    name, png = export_chart_png(overlay_bar_chart(BASELINE, FILTERED), "retina", scale=1.0)
    assert name == "escrs_retina.png"
    assert png[:8] == b"\x89PNG\r\n\x1a\n"
