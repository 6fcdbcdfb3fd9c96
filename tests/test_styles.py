import pytest

from services.styles import (
    THEMES, GRADIENT_SCHEMES, SOLID_COLOR_SCHEMES, build_stylesheet, get_theme, rating_colors, rating_label_color,
    rating_position,
)


def test_themes_define_every_color():
    for name in ("default", "modern", "elegant"):
        theme = THEMES[name]
        for key in ("background", "text", "border", "input", "primary", "muted"):
            assert theme[key].startswith("#")


def test_unknown_theme_falls_back_to_default():
    assert get_theme("neon") is THEMES["default"]
    assert get_theme(None) is THEMES["default"]


def test_tables_are_read_only():
    with pytest.raises(TypeError):
        THEMES["custom"] = {}
    with pytest.raises(TypeError):
        SOLID_COLOR_SCHEMES["blue"]["selected"] = "#000"


def test_solid_scheme_ignores_position():
    first = rating_colors(1, 1, 10, "green")
    last = rating_colors(10, 1, 10, "green")
    assert first == last
    assert first["selected"] == SOLID_COLOR_SCHEMES["green"]["selected"]


def test_gradient_buckets():
    low, mid, high = (rating_colors(v, 0, 100, gradient_scheme="severity")["selected"] for v in (33, 66, 67))
    assert low == rating_colors(0, 0, 100, "green")["selected"]
    assert mid == rating_colors(50, 0, 100, gradient_scheme="satisfaction")["selected"]
    assert high == rating_colors(0, 0, 100, "red")["selected"]
    assert len({low, mid, high}) == 3


def test_empty_span_counts_as_start():
    assert rating_position(5, 5, 5) == 0
    assert rating_colors(5, 5, 5, gradient_scheme="temperature") == rating_colors(0, 0, 10, "blue")


def test_label_colors_follow_gradient():
    assert set(GRADIENT_SCHEMES) == {"severity", "satisfaction", "temperature"}
    start = rating_label_color("start", gradient_scheme="satisfaction")
    end = rating_label_color("end", gradient_scheme="satisfaction")
    assert start != end


def test_stylesheet_is_themed_and_prefixed():
    css = build_stylesheet("elegant")
    assert f"--qf-primary: {THEMES['elegant']['primary']}" in css
    for selector in (".quick-form-input:hover", ".quick-form-input:focus", ".quick-form-rating-button.selected",
                     ".quick-form-picture-option.selected", ".quick-form-field--invalid"):
        assert selector in css
