"""
Style tables shared by the submission page and the embed bundle.

Themes and rating color schemes are read-only configuration. They are built
once at import and exposed as MappingProxyType lookups by name.
"""
from types import MappingProxyType
from typing import Dict, Mapping, Optional


DEFAULT_THEME = "default"

THEMES: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "default": MappingProxyType({
        "name": "Default",
        "background": "#ffffff",
        "text": "#111827",
        "border": "#e5e7eb",
        "input": "#d1d5db",
        "primary": "#6366f1",
        "primary_hover": "#4f46e5",
        "primary_text": "#ffffff",
        "muted": "#6b7280",
        "muted_background": "#f9fafb",
    }),
    "modern": MappingProxyType({
        "name": "Modern",
        "background": "#fafafa",
        "text": "#18181b",
        "border": "#e4e4e7",
        "input": "#d4d4d8",
        "primary": "#4f46e5",
        "primary_hover": "#4338ca",
        "primary_text": "#ffffff",
        "muted": "#71717a",
        "muted_background": "#f4f4f5",
    }),
    "elegant": MappingProxyType({
        "name": "Elegant",
        "background": "#fafaf9",
        "text": "#1c1917",
        "border": "#e7e5e4",
        "input": "#d6d3d1",
        "primary": "#d97706",
        "primary_hover": "#b45309",
        "primary_text": "#ffffff",
        "muted": "#78716c",
        "muted_background": "#f5f5f4",
    }),
})

ERROR_COLOR = "#ef4444"


def get_theme(name: Optional[str]) -> Mapping[str, str]:
    """Look up a theme by name, falling back to the default theme."""
    return THEMES.get(name or DEFAULT_THEME) or THEMES[DEFAULT_THEME]


# Tailwind-500/600/400 equivalents
_PALETTE = MappingProxyType({
    "blue": ("#3b82f6", "#2563eb", "#60a5fa"),
    "green": ("#22c55e", "#16a34a", "#4ade80"),
    "purple": ("#a855f7", "#9333ea", "#c084fc"),
    "red": ("#ef4444", "#dc2626", "#f87171"),
    "amber": ("#f59e0b", "#d97706", "#fbbf24"),
    "yellow": ("#eab308", "#ca8a04", "#facc15"),
})


def _scheme(color: str) -> Mapping[str, str]:
    fill, edge, hover = _PALETTE[color]
    return MappingProxyType({"selected": fill, "border": edge, "hover": hover, "text": edge})


SOLID_COLOR_SCHEMES: Mapping[str, Mapping[str, str]] = MappingProxyType({
    name: _scheme(name) for name in ("blue", "green", "purple", "red", "amber")
})

# Three buckets each: start / middle / end of the rating range
GRADIENT_SCHEMES: Mapping[str, tuple] = MappingProxyType({
    "severity": ("green", "yellow", "red"),
    "satisfaction": ("red", "yellow", "green"),
    "temperature": ("blue", "green", "red"),
})

_LABEL_POSITIONS = {"start": 0, "middle": 1, "end": 2}


def rating_position(value: int, min_value: int, max_value: int) -> float:
    span = max_value - min_value
    if span <= 0:
        return 0.0
    return (value - min_value) / span


def _bucket(position: float) -> int:
    if position <= 0.33:
        return 0
    if position <= 0.66:
        return 1
    return 2


def rating_colors(
    value: int,
    min_value: int,
    max_value: int,
    color_scheme: str = "blue",
    gradient_scheme: Optional[str] = None,
) -> Dict[str, str]:
    """Colors for one rating button: {"selected", "border", "hover"}.

    Solid schemes color every position the same; gradient schemes bucket the
    normalized position into thirds.
    """
    if gradient_scheme and gradient_scheme in GRADIENT_SCHEMES:
        color = GRADIENT_SCHEMES[gradient_scheme][_bucket(rating_position(value, min_value, max_value))]
        scheme = _scheme(color)
    else:
        scheme = SOLID_COLOR_SCHEMES.get(color_scheme) or SOLID_COLOR_SCHEMES["blue"]
    return {"selected": scheme["selected"], "border": scheme["border"], "hover": scheme["hover"]}


def rating_label_color(position: str, color_scheme: str = "blue", gradient_scheme: Optional[str] = None) -> str:
    """Text color for the start/middle/end label under a rating scale."""
    if gradient_scheme and gradient_scheme in GRADIENT_SCHEMES:
        return _scheme(GRADIENT_SCHEMES[gradient_scheme][_LABEL_POSITIONS[position]])["text"]
    return (SOLID_COLOR_SCHEMES.get(color_scheme) or SOLID_COLOR_SCHEMES["blue"])["text"]


_STYLESHEET = """
.quick-form { box-sizing: border-box; max-width: 620px; margin: 0 auto; padding: 24px; font-family: system-ui, -apple-system, sans-serif; background: var(--qf-background); color: var(--qf-text); border: 1px solid var(--qf-border); border-radius: 8px; }
.quick-form *, .quick-form *::before, .quick-form *::after { box-sizing: border-box; }
.quick-form-field { margin-bottom: 20px; }
.quick-form-title { font-size: 24px; font-weight: bold; margin: 0 0 10px; }
.quick-form-subtitle { font-size: 18px; color: var(--qf-muted); margin: 0 0 15px; }
.quick-form-paragraph { font-size: 15px; line-height: 1.6; margin: 0; }
.quick-form-separator { border: 0; border-top: 1px solid var(--qf-border); margin: 8px 0; }
.quick-form-label { display: block; margin-bottom: 5px; font-weight: 500; }
.quick-form-helper-text { font-size: 14px; color: var(--qf-muted); margin-top: 4px; }
.quick-form-question { font-size: 16px; font-weight: 500; text-align: center; margin: 8px 0; }

.quick-form-input { width: 100%; padding: 8px 12px; border: 1px solid var(--qf-input); border-radius: 6px; font-size: 14px; line-height: 1.5; background: #fff; color: inherit; transition: border-color 0.15s ease-in-out; }
.quick-form-input:hover { border-color: var(--qf-primary); }
.quick-form-input:focus { outline: none; border-color: var(--qf-primary); box-shadow: 0 0 0 3px rgba(99, 102, 241, 0.15); }
.quick-form-input::placeholder { color: #9ca3af; }

.quick-form-checkbox-wrapper { display: flex; align-items: center; gap: 8px; }
.quick-form-checkbox { width: 16px; height: 16px; margin: 0; border: 2px solid var(--qf-input); border-radius: 4px; cursor: pointer; appearance: none; -webkit-appearance: none; background-color: #fff; }
.quick-form-checkbox:hover { border-color: var(--qf-primary); }
.quick-form-checkbox:checked { background-color: var(--qf-primary); border-color: var(--qf-primary); }
.quick-form-checkbox:focus { outline: none; box-shadow: 0 0 0 2px rgba(99, 102, 241, 0.3); }

.quick-form-image-upload { display: flex; flex-direction: column; align-items: center; justify-content: center; gap: 8px; min-height: 160px; padding: 20px; border: 2px dashed var(--qf-input); border-radius: 8px; background: var(--qf-muted-background); text-align: center; cursor: pointer; transition: all 0.2s ease; }
.quick-form-image-upload:hover { border-color: var(--qf-primary); }
.quick-form-image-upload:focus-within { border-color: var(--qf-primary); }
.quick-form-image-preview { display: block; max-width: 100%; margin-top: 10px; border-radius: 8px; box-shadow: 0 1px 3px rgba(0, 0, 0, 0.1); }
.quick-form-image-preview[hidden] { display: none; }
.quick-form-file-button { display: inline-block; padding: 6px 14px; border-radius: 6px; background: var(--qf-primary); color: var(--qf-primary-text); font-size: 14px; }

.quick-form-dual-image { display: flex; gap: 16px; margin-top: 8px; }
.quick-form-dual-image-side { flex: 1; display: flex; flex-direction: column; gap: 8px; }
.quick-form-dual-image-label { font-weight: 500; font-size: 14px; color: var(--qf-muted); }

.quick-form-picture-select { display: grid; grid-template-columns: repeat(auto-fit, minmax(150px, 1fr)); gap: 12px; margin-top: 8px; }
.quick-form-picture-option { display: block; padding: 4px; border: 2px solid transparent; border-radius: 8px; background: #fff; cursor: pointer; transition: all 0.2s ease; }
.quick-form-picture-option:hover { transform: translateY(-2px); box-shadow: 0 4px 6px -1px rgba(0, 0, 0, 0.1); }
.quick-form-picture-option.selected, .quick-form-picture-radio:checked + .quick-form-picture-option { border-color: var(--qf-primary); background: var(--qf-muted-background); }
.quick-form-picture-radio:focus + .quick-form-picture-option { box-shadow: 0 0 0 3px rgba(99, 102, 241, 0.3); }
.quick-form-picture-option img { display: block; width: 100%; height: 150px; object-fit: cover; border-radius: 6px; }
.quick-form-picture-option .quick-form-picture-label { margin-top: 4px; text-align: center; font-size: 14px; color: var(--qf-muted); }

.quick-form-rating-scale { display: flex; flex-direction: column; gap: 8px; margin-top: 8px; }
.quick-form-rating-buttons { display: flex; gap: 8px; justify-content: space-between; align-items: center; flex-wrap: wrap; }
.quick-form-rating-button { display: flex; align-items: center; justify-content: center; width: 40px; height: 40px; border: 2px solid var(--qf-input); border-radius: 50%; background: #fff; color: inherit; font-weight: 500; cursor: pointer; transition: all 0.2s ease; }
.quick-form-rating-button:hover { transform: translateY(-2px); border-color: var(--qf-rating-hover, var(--qf-primary)); }
.quick-form-rating-button:focus { outline: none; box-shadow: 0 0 0 3px rgba(99, 102, 241, 0.3); }
.quick-form-rating-button.selected, .quick-form-rating-radio:checked + .quick-form-rating-button { background: var(--qf-rating-selected, var(--qf-primary)); border-color: var(--qf-rating-border, var(--qf-primary)); color: #fff; }
.quick-form-rating-labels { display: flex; justify-content: space-between; font-size: 14px; }

.quick-form-sr-only { position: absolute; width: 1px; height: 1px; padding: 0; margin: -1px; overflow: hidden; clip: rect(0, 0, 0, 0); border: 0; }

.quick-form-submit { padding: 8px 16px; border: none; border-radius: 6px; background: var(--qf-primary); color: var(--qf-primary-text); font-weight: 500; cursor: pointer; transition: all 0.15s ease-in-out; }
.quick-form-submit:hover { background: var(--qf-primary-hover); }
.quick-form-submit:focus { outline: none; box-shadow: 0 0 0 3px rgba(99, 102, 241, 0.3); }
.quick-form-submit:disabled { opacity: 0.6; cursor: default; }

.quick-form-error { margin: 0 0 16px; padding: 8px 12px; border-radius: 6px; color: var(--qf-error); background: rgba(239, 68, 68, 0.08); font-size: 14px; }
.quick-form-field--invalid .quick-form-label, .quick-form-field--invalid .quick-form-helper-text { color: var(--qf-error); }
.quick-form-field--invalid .quick-form-input, .quick-form-field--invalid .quick-form-checkbox, .quick-form-field--invalid .quick-form-image-upload, .quick-form-field--invalid .quick-form-rating-button { border-color: var(--qf-error); }
.quick-form-field--invalid .quick-form-picture-select { outline: 2px solid var(--qf-error); outline-offset: 4px; border-radius: 8px; }
.quick-form-thanks { text-align: center; }
"""


def build_stylesheet(theme_name: Optional[str] = None) -> str:
    """Single stylesheet covering every field type, parameterized by theme.

    Used verbatim by the submission page and by the embed bundle, so both
    paths show the same states (default, hover, selected, focus, error).
    """
    theme = get_theme(theme_name)
    variables = (
        ".quick-form {"
        f" --qf-background: {theme['background']};"
        f" --qf-text: {theme['text']};"
        f" --qf-border: {theme['border']};"
        f" --qf-input: {theme['input']};"
        f" --qf-primary: {theme['primary']};"
        f" --qf-primary-hover: {theme['primary_hover']};"
        f" --qf-primary-text: {theme['primary_text']};"
        f" --qf-muted: {theme['muted']};"
        f" --qf-muted-background: {theme['muted_background']};"
        f" --qf-error: {ERROR_COLOR};"
        " }"
    )
    return variables + _STYLESHEET
