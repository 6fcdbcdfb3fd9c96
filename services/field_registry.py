"""
Field-type registry.

Every field type tag maps to exactly one FieldContract. A contract owns the
type's defaults, attribute schema, emptiness rule and its rendering in three
contexts:

- designer_html: read-only preview used by the builder
- form_html: the server-rendered submission page
- embed_builder / embed_props: the generated embed bundle

plus `capture`, which turns a multipart submission into the value shape the
embed bundle POSTs, and `coerce`, which checks a POSTed JSON value against
that same shape. Renderers, the validator and the submission sink all go
through get_contract(); nothing else switches on type tags.
"""
import asyncio
import copy
from html import escape
from typing import Any, Dict, List, Mapping, Optional, Type

from pydantic import ValidationError
from starlette.datastructures import UploadFile

from models.fields import (
    FieldType, FieldInstance, FieldAttributes, MalformedContentError, UnknownFieldTypeError, error_list,
    TextAttributes, TextAreaAttributes, SelectAttributes, InputAttributes, HeadingAttributes,
    ParagraphAttributes, SpacerAttributes, ImageUploadAttributes, DualImageUploadAttributes,
    RatingScaleAttributes, PictureSelectAttributes,
)
from services.images import encode_upload
from services.styles import rating_colors, rating_label_color


PLACEHOLDER_IMAGE = "https://placehold.co/200x200"


def _e(value: Any) -> str:
    return escape("" if value is None else str(value), quote=True)


def dom_id(instance: FieldInstance, suffix: str = "") -> str:
    return f"quick-form-field-{instance.id}{suffix}"


def _is_true(value: Any) -> bool:
    return value is True or value == "true"


class FieldContract:
    """Behavior contract for one field type."""

    type: FieldType
    attributes: Type[FieldAttributes] = FieldAttributes
    designer_label: str = ""
    is_input: bool = True
    defaults: Mapping[str, Any] = {}
    # JS function expression: (field) -> {el} for layout types, or
    # (field) -> control(...) for input types. See services.embed_bundle.
    embed_builder: str = ""

    # ---- model ----

    def construct(self, field_id: str) -> FieldInstance:
        return FieldInstance(id=field_id, type=self.type, extra_attributes=copy.deepcopy(dict(self.defaults)))

    def parse_attributes(self, instance: FieldInstance):
        try:
            return self.attributes.model_validate(instance.extra_attributes)
        except ValidationError as e:
            raise MalformedContentError(f"Invalid attributes for field {instance.id}", error_list(e))

    # ---- validation ----

    def is_empty(self, value: Any) -> bool:
        return value is None or value == ""

    def is_required(self, instance: FieldInstance) -> bool:
        return self.is_input and _is_true(instance.extra_attributes.get("required", False))

    def validate(self, instance: FieldInstance, value: Any) -> bool:
        if self.is_required(instance):
            return not self.is_empty(value)
        return True

    def marshal(self, value: Any) -> Any:
        """Value as stored in a submission payload; None drops the key."""
        if value is None or value == "":
            return None
        return value

    def coerce(self, instance: FieldInstance, value: Any) -> Any:
        """Canonical shape of a JSON-submitted value, or None when it has none.

        The JSON counterpart of `capture`; both feed the validator the same shapes.
        """
        if isinstance(value, str):
            return value or None
        return None

    # ---- rendering ----

    def designer_html(self, instance: FieldInstance) -> str:
        raise NotImplementedError

    def form_html(self, instance: FieldInstance, value: Any = None, invalid: bool = False) -> str:
        raise NotImplementedError

    def embed_props(self, instance: FieldInstance) -> Dict[str, Any]:
        attrs = self.parse_attributes(instance)
        return {
            "id": instance.id,
            "type": self.type.value,
            "required": self.is_required(instance),
            "attrs": attrs.model_dump(mode="json"),
        }

    # ---- capture ----

    async def capture(self, instance: FieldInstance, form) -> Any:
        return None


# --------------
# Shared markup helpers for input fields
# --------------

def _field_block(instance: FieldInstance, attrs, body: str, invalid: bool, with_label: bool = True) -> str:
    classes = "quick-form-field quick-form-field--invalid" if invalid else "quick-form-field"
    label = ""
    if with_label:
        star = " *" if attrs.required else ""
        label = f'<label class="quick-form-label" for="{_e(dom_id(instance))}">{_e(attrs.label)}{star}</label>'
    helper = f'<div class="quick-form-helper-text">{_e(attrs.helperText)}</div>' if attrs.helperText else ""
    return f'<div class="{classes}" data-field-id="{_e(instance.id)}">{label}{body}{helper}</div>'


def _designer_block(attrs, body: str) -> str:
    star = " *" if getattr(attrs, "required", False) else ""
    label = f'<div class="quick-form-label">{_e(attrs.label)}{star}</div>' if hasattr(attrs, "label") else ""
    helper = f'<div class="quick-form-helper-text">{_e(attrs.helperText)}</div>' if getattr(attrs, "helperText", "") else ""
    return f'<div class="quick-form-field">{label}{body}{helper}</div>'


def _form_text(form, name: str) -> Optional[str]:
    raw = form.get(name)
    if raw is None or isinstance(raw, UploadFile):
        return None
    return str(raw)


# --------------
# Layout types
# --------------

class TitleFieldContract(FieldContract):
    type = FieldType.TITLE
    attributes = HeadingAttributes
    designer_label = "Title field"
    is_input = False
    defaults = {"title": "Title field"}
    tag = "h1"
    css = "quick-form-title"
    embed_builder = """function (field) {
      var root = el('div', 'quick-form-field');
      root.appendChild(el('h1', 'quick-form-title', field.attrs.title));
      return { el: root };
    }"""

    def designer_html(self, instance):
        attrs = self.parse_attributes(instance)
        return f'<div class="quick-form-field"><div class="quick-form-label">{_e(self.designer_label)}</div><{self.tag} class="{self.css}">{_e(attrs.title)}</{self.tag}></div>'

    def form_html(self, instance, value=None, invalid=False):
        attrs = self.parse_attributes(instance)
        return f'<div class="quick-form-field"><{self.tag} class="{self.css}">{_e(attrs.title)}</{self.tag}></div>'


class SubTitleFieldContract(TitleFieldContract):
    type = FieldType.SUBTITLE
    designer_label = "SubTitle field"
    defaults = {"title": "SubTitle field"}
    tag = "h2"
    css = "quick-form-subtitle"
    embed_builder = """function (field) {
      var root = el('div', 'quick-form-field');
      root.appendChild(el('h2', 'quick-form-subtitle', field.attrs.title));
      return { el: root };
    }"""


class ParagraphFieldContract(FieldContract):
    type = FieldType.PARAGRAPH
    attributes = ParagraphAttributes
    designer_label = "Paragraph field"
    is_input = False
    defaults = {"text": "Text here"}
    embed_builder = """function (field) {
      var root = el('div', 'quick-form-field');
      root.appendChild(el('p', 'quick-form-paragraph', field.attrs.text));
      return { el: root };
    }"""

    def designer_html(self, instance):
        attrs = self.parse_attributes(instance)
        return f'<div class="quick-form-field"><div class="quick-form-label">Paragraph field</div><p class="quick-form-paragraph">{_e(attrs.text)}</p></div>'

    def form_html(self, instance, value=None, invalid=False):
        attrs = self.parse_attributes(instance)
        return f'<div class="quick-form-field"><p class="quick-form-paragraph">{_e(attrs.text)}</p></div>'


class SeparatorFieldContract(FieldContract):
    type = FieldType.SEPARATOR
    designer_label = "Separator field"
    is_input = False
    embed_builder = """function (field) {
      var root = el('div', 'quick-form-field');
      root.appendChild(el('hr', 'quick-form-separator'));
      return { el: root };
    }"""

    def designer_html(self, instance):
        return '<div class="quick-form-field"><div class="quick-form-label">Separator field</div><hr class="quick-form-separator"></div>'

    def form_html(self, instance, value=None, invalid=False):
        return '<div class="quick-form-field"><hr class="quick-form-separator"></div>'


class SpacerFieldContract(FieldContract):
    type = FieldType.SPACER
    attributes = SpacerAttributes
    designer_label = "Spacer field"
    is_input = False
    defaults = {"height": 20}
    embed_builder = """function (field) {
      var root = el('div', 'quick-form-spacer');
      root.style.height = field.attrs.height + 'px';
      return { el: root };
    }"""

    def designer_html(self, instance):
        attrs = self.parse_attributes(instance)
        return f'<div class="quick-form-field"><div class="quick-form-label">Spacer field: {attrs.height}px</div></div>'

    def form_html(self, instance, value=None, invalid=False):
        attrs = self.parse_attributes(instance)
        return f'<div class="quick-form-spacer" style="height: {attrs.height}px"></div>'


# --------------
# Plain inputs
# --------------

class TextFieldContract(FieldContract):
    type = FieldType.TEXT
    attributes = TextAttributes
    designer_label = "Text Field"
    input_type = "text"
    defaults = {
        "label": "Text field",
        "helperText": "Helper text",
        "required": False,
        "placeHolder": "Value here...",
    }
    embed_builder = """function (field) { return textControl(field, 'text'); }"""

    def _control(self, instance, attrs, value, disabled=False) -> str:
        extra = " disabled" if disabled else ""
        return (
            f'<input class="quick-form-input" type="{self.input_type}" id="{_e(dom_id(instance))}" '
            f'name="{_e(instance.id)}" placeholder="{_e(attrs.placeHolder)}" value="{_e(value or "")}"{extra}>'
        )

    def designer_html(self, instance):
        attrs = self.parse_attributes(instance)
        return _designer_block(attrs, self._control(instance, attrs, None, disabled=True))

    def form_html(self, instance, value=None, invalid=False):
        attrs = self.parse_attributes(instance)
        return _field_block(instance, attrs, self._control(instance, attrs, value), invalid)

    async def capture(self, instance, form):
        return _form_text(form, instance.id) or None


class NumberFieldContract(TextFieldContract):
    type = FieldType.NUMBER
    designer_label = "Number Field"
    input_type = "number"
    defaults = {
        "label": "Number field",
        "helperText": "Helper text",
        "required": False,
        "placeHolder": "0",
    }
    embed_builder = """function (field) { return textControl(field, 'number'); }"""

    def coerce(self, instance, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return super().coerce(instance, value)


class DateFieldContract(FieldContract):
    type = FieldType.DATE
    attributes = InputAttributes
    designer_label = "Date Field"
    defaults = {
        "label": "Date field",
        "helperText": "Pick a date",
        "required": False,
    }
    embed_builder = """function (field) { return textControl(field, 'date'); }"""

    def _control(self, instance, value, disabled=False) -> str:
        extra = " disabled" if disabled else ""
        return f'<input class="quick-form-input" type="date" id="{_e(dom_id(instance))}" name="{_e(instance.id)}" value="{_e(value or "")}"{extra}>'

    def designer_html(self, instance):
        attrs = self.parse_attributes(instance)
        return _designer_block(attrs, self._control(instance, None, disabled=True))

    def form_html(self, instance, value=None, invalid=False):
        attrs = self.parse_attributes(instance)
        return _field_block(instance, attrs, self._control(instance, value), invalid)

    async def capture(self, instance, form):
        return _form_text(form, instance.id) or None


class TextAreaFieldContract(TextFieldContract):
    type = FieldType.TEXTAREA
    attributes = TextAreaAttributes
    designer_label = "TextArea Field"
    defaults = {
        "label": "Text area",
        "helperText": "Helper text",
        "required": False,
        "placeHolder": "Value here...",
        "rows": 3,
    }
    embed_builder = """function (field) {
      var a = field.attrs;
      var root = shell(field);
      var area = el('textarea', 'quick-form-input');
      area.id = controlId(field);
      area.name = field.id;
      area.rows = a.rows;
      area.placeholder = a.placeHolder || '';
      root.appendChild(area);
      root.appendChild(helper(field));
      return control(field, root, function () {
        return Promise.resolve(area.value === '' ? undefined : area.value);
      });
    }"""

    def _control(self, instance, attrs, value, disabled=False) -> str:
        extra = " disabled" if disabled else ""
        return (
            f'<textarea class="quick-form-input" id="{_e(dom_id(instance))}" name="{_e(instance.id)}" '
            f'rows="{attrs.rows}" placeholder="{_e(attrs.placeHolder)}"{extra}>{_e(value or "")}</textarea>'
        )


class SelectFieldContract(TextFieldContract):
    type = FieldType.SELECT
    attributes = SelectAttributes
    designer_label = "Select Field"
    defaults = {
        "label": "Select field",
        "helperText": "Helper text",
        "required": False,
        "placeHolder": "Value here...",
        "options": [],
    }
    embed_builder = """function (field) {
      var a = field.attrs;
      var root = shell(field);
      var select = el('select', 'quick-form-input');
      select.id = controlId(field);
      select.name = field.id;
      var empty = el('option', null, a.placeHolder || '');
      empty.value = '';
      select.appendChild(empty);
      (a.options || []).forEach(function (option) {
        var node = el('option', null, option);
        node.value = option;
        select.appendChild(node);
      });
      root.appendChild(select);
      root.appendChild(helper(field));
      return control(field, root, function () {
        return Promise.resolve(select.value === '' ? undefined : select.value);
      });
    }"""

    def _control(self, instance, attrs, value, disabled=False) -> str:
        extra = " disabled" if disabled else ""
        options = [f'<option value="">{_e(attrs.placeHolder)}</option>']
        for option in attrs.options:
            selected = " selected" if value == option else ""
            options.append(f'<option value="{_e(option)}"{selected}>{_e(option)}</option>')
        return (
            f'<select class="quick-form-input" id="{_e(dom_id(instance))}" name="{_e(instance.id)}"{extra}>'
            + "".join(options) + "</select>"
        )

    def coerce(self, instance, value):
        if not isinstance(value, str) or not value:
            return None
        attrs = self.parse_attributes(instance)
        return value if value in attrs.options else None

    async def capture(self, instance, form):
        return self.coerce(instance, _form_text(form, instance.id))


class CheckboxFieldContract(FieldContract):
    type = FieldType.CHECKBOX
    attributes = InputAttributes
    designer_label = "CheckBox Field"
    defaults = {
        "label": "Checkbox field",
        "helperText": "Helper text",
        "required": False,
    }
    embed_builder = """function (field) {
      var a = field.attrs;
      var root = shell(field, false);
      var wrap = el('div', 'quick-form-checkbox-wrapper');
      var box = el('input', 'quick-form-checkbox');
      box.type = 'checkbox';
      box.id = controlId(field);
      box.name = field.id;
      var text = el('label', 'quick-form-label', a.label + (a.required ? ' *' : ''));
      text.htmlFor = box.id;
      wrap.appendChild(box);
      wrap.appendChild(text);
      root.appendChild(wrap);
      root.appendChild(helper(field));
      return control(field, root, function () {
        return Promise.resolve(box.checked);
      }, function (value) { return value !== true; });
    }"""

    def is_empty(self, value):
        return not _is_true(value)

    def marshal(self, value):
        return _is_true(value)

    def coerce(self, instance, value):
        return _is_true(value)

    def _control(self, instance, attrs, checked, disabled=False) -> str:
        flags = (" checked" if checked else "") + (" disabled" if disabled else "")
        star = " *" if attrs.required else ""
        return (
            '<div class="quick-form-checkbox-wrapper">'
            f'<input class="quick-form-checkbox" type="checkbox" id="{_e(dom_id(instance))}" name="{_e(instance.id)}" value="true"{flags}>'
            f'<label class="quick-form-label" for="{_e(dom_id(instance))}">{_e(attrs.label)}{star}</label>'
            '</div>'
        )

    def designer_html(self, instance):
        attrs = self.parse_attributes(instance)
        return _designer_block(attrs, self._control(instance, attrs, False, disabled=True))

    def form_html(self, instance, value=None, invalid=False):
        attrs = self.parse_attributes(instance)
        return _field_block(instance, attrs, self._control(instance, attrs, _is_true(value)), invalid, with_label=False)

    async def capture(self, instance, form):
        return _form_text(form, instance.id) in ("true", "on")


# --------------
# Image inputs
# --------------

def _image_picker_html(instance, name: str, suffix: str, prompt: str, button_text: str, value: Optional[str], disabled=False) -> str:
    """File picker with a hidden carry input so an encoded image survives a re-render."""
    preview = (
        f'<img class="quick-form-image-preview" src="{_e(value)}" alt="">' if value
        else '<img class="quick-form-image-preview" alt="" hidden>'
    )
    carry = f'<input type="hidden" name="{_e(name)}__data" value="{_e(value)}">' if value else ""
    extra = " disabled" if disabled else ""
    control_id = _e(dom_id(instance, suffix))
    return (
        f'<label class="quick-form-image-upload" for="{control_id}">'
        f'<span>{_e(prompt)}</span>'
        f'<span class="quick-form-file-button">{_e(button_text)}</span>'
        f'<input class="quick-form-sr-only" type="file" accept="image/*" id="{control_id}" name="{_e(name)}"{extra}>'
        f'</label>{carry}{preview}'
    )


async def _capture_image(form, name: str, max_dimension: int) -> Optional[str]:
    upload = form.get(name)
    if isinstance(upload, UploadFile):
        encoded = await encode_upload(upload, max_dimension)
        if encoded:
            return encoded
    return _data_url(_form_text(form, f"{name}__data"))


def _data_url(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.startswith("data:image/"):
        return value
    return None


class ImageUploadFieldContract(FieldContract):
    type = FieldType.IMAGE_UPLOAD
    attributes = ImageUploadAttributes
    designer_label = "Image Upload"
    defaults = {
        "label": "Image Upload",
        "helperText": "Upload an image file",
        "required": False,
        "prompt": "Upload an image",
        "buttonText": "Choose File",
        "width": "w-96",
        "height": "h-64",
        "maxDimension": 800,
    }
    embed_builder = """function (field) {
      var a = field.attrs;
      var root = shell(field);
      var picker = imagePicker(field, controlId(field), a.prompt, a.buttonText, a.maxDimension);
      root.appendChild(picker.el);
      root.appendChild(helper(field));
      return control(field, root, picker.collect);
    }"""

    def designer_html(self, instance):
        attrs = self.parse_attributes(instance)
        return _designer_block(attrs, _image_picker_html(instance, instance.id, "", attrs.prompt, attrs.buttonText, None, disabled=True))

    def form_html(self, instance, value=None, invalid=False):
        attrs = self.parse_attributes(instance)
        body = _image_picker_html(instance, instance.id, "", attrs.prompt, attrs.buttonText, value if isinstance(value, str) else None)
        return _field_block(instance, attrs, body, invalid)

    def coerce(self, instance, value):
        return _data_url(value)

    async def capture(self, instance, form):
        attrs = self.parse_attributes(instance)
        return await _capture_image(form, instance.id, attrs.maxDimension)


class DualImageUploadFieldContract(FieldContract):
    type = FieldType.DUAL_IMAGE_UPLOAD
    attributes = DualImageUploadAttributes
    designer_label = "Dual Image Upload"
    defaults = {
        "label": "Dual Image Upload",
        "helperText": "Upload two images",
        "required": False,
        "leftLabel": "Left Image",
        "rightLabel": "Right Image",
        "leftPrompt": "Upload left image",
        "rightPrompt": "Upload right image",
        "maxDimension": 800,
    }
    embed_builder = """function (field) {
      var a = field.attrs;
      var root = shell(field);
      var pair = el('div', 'quick-form-dual-image');
      var sides = [['left', a.leftLabel, a.leftPrompt], ['right', a.rightLabel, a.rightPrompt]].map(function (side) {
        var column = el('div', 'quick-form-dual-image-side');
        column.appendChild(el('div', 'quick-form-dual-image-label', side[1]));
        var picker = imagePicker(field, controlId(field) + '_' + side[0], side[2], 'Choose File', a.maxDimension);
        column.appendChild(picker.el);
        pair.appendChild(column);
        return picker;
      });
      root.appendChild(pair);
      root.appendChild(helper(field));
      return control(field, root, function () {
        return Promise.all([sides[0].collect(), sides[1].collect()]).then(function (urls) {
          if (!urls[0] && !urls[1]) return undefined;
          return { left: urls[0] || null, right: urls[1] || null };
        });
      }, function (value) { return !(value && value.left && value.right); });
    }"""

    def is_empty(self, value):
        if isinstance(value, dict):
            return not (value.get("left") and value.get("right"))
        return True

    def _body(self, instance, attrs, value, disabled=False) -> str:
        value = value if isinstance(value, dict) else {}
        columns = []
        for side, label, prompt in (("left", attrs.leftLabel, attrs.leftPrompt), ("right", attrs.rightLabel, attrs.rightPrompt)):
            picker = _image_picker_html(instance, f"{instance.id}_{side}", f"_{side}", prompt, "Choose File", value.get(side), disabled)
            columns.append(
                f'<div class="quick-form-dual-image-side"><div class="quick-form-dual-image-label">{_e(label)}</div>{picker}</div>'
            )
        return '<div class="quick-form-dual-image">' + "".join(columns) + "</div>"

    def designer_html(self, instance):
        attrs = self.parse_attributes(instance)
        return _designer_block(attrs, self._body(instance, attrs, None, disabled=True))

    def form_html(self, instance, value=None, invalid=False):
        attrs = self.parse_attributes(instance)
        return _field_block(instance, attrs, self._body(instance, attrs, value), invalid, with_label=True)

    def coerce(self, instance, value):
        if not isinstance(value, dict):
            return None
        left, right = _data_url(value.get("left")), _data_url(value.get("right"))
        if not left and not right:
            return None
        return {"left": left, "right": right}

    async def capture(self, instance, form):
        attrs = self.parse_attributes(instance)
        left, right = await asyncio.gather(
            _capture_image(form, f"{instance.id}_left", attrs.maxDimension),
            _capture_image(form, f"{instance.id}_right", attrs.maxDimension),
        )
        if not left and not right:
            return None
        return {"left": left, "right": right}


# --------------
# Choice inputs
# --------------

class PictureSelectFieldContract(FieldContract):
    type = FieldType.PICTURE_SELECT
    attributes = PictureSelectAttributes
    designer_label = "Picture Select"
    defaults = {
        "label": "Picture Select",
        "helperText": "Select one of the images",
        "required": False,
        "images": [{"src": PLACEHOLDER_IMAGE, "label": "Option 1"}],
    }
    embed_builder = """function (field) {
      var a = field.attrs;
      var root = shell(field);
      var grid = el('div', 'quick-form-picture-select');
      grid.setAttribute('role', 'radiogroup');
      var hidden = el('input');
      hidden.type = 'hidden';
      hidden.id = controlId(field);
      hidden.name = field.id;
      var options = [];
      var chosen = null;
      (a.images || []).forEach(function (image, index) {
        var option = el('div', 'quick-form-picture-option');
        option.tabIndex = 0;
        option.setAttribute('role', 'radio');
        option.setAttribute('aria-checked', 'false');
        var picture = el('img');
        picture.src = image.src;
        picture.alt = image.label || '';
        option.appendChild(picture);
        if (image.label) option.appendChild(el('div', 'quick-form-picture-label', image.label));
        var choose = function () {
          options.forEach(function (other) {
            other.classList.remove('selected');
            other.setAttribute('aria-checked', 'false');
          });
          option.classList.add('selected');
          option.setAttribute('aria-checked', 'true');
          hidden.value = String(index);
          chosen = image;
        };
        option.addEventListener('click', choose);
        option.addEventListener('keydown', function (e) {
          if (e.key === 'Enter' || e.key === ' ') { e.preventDefault(); choose(); }
        });
        options.push(option);
        grid.appendChild(option);
      });
      root.appendChild(grid);
      root.appendChild(hidden);
      root.appendChild(helper(field));
      return control(field, root, function () {
        return Promise.resolve(chosen ? { url: chosen.src, label: chosen.label } : undefined);
      }, function (value) { return !(value && value.url); });
    }"""

    def is_empty(self, value):
        if isinstance(value, dict):
            return not value.get("url")
        return value is None or value == ""

    @staticmethod
    def _option_index(attrs, value: Any) -> Optional[int]:
        """Index of the option a {url, label} value names; options may share a src."""
        if not isinstance(value, dict):
            return None
        label = value.get("label") or ""
        for index, image in enumerate(attrs.images):
            if image.src == value.get("url") and image.label == label:
                return index
        return None

    @staticmethod
    def _option_value(image) -> Dict[str, str]:
        return {"url": image.src, "label": image.label}

    # Radios carry the option index
    def _body(self, instance, attrs, selected: Optional[int], disabled=False) -> str:
        options = []
        for index, image in enumerate(attrs.images):
            checked = " checked" if index == selected else ""
            extra = " disabled" if disabled else ""
            caption = f'<div class="quick-form-picture-label">{_e(image.label)}</div>' if image.label else ""
            options.append(
                f'<label><input class="quick-form-picture-radio quick-form-sr-only" type="radio" '
                f'id="{_e(dom_id(instance, f"-{index}"))}" name="{_e(instance.id)}" value="{index}"{checked}{extra}>'
                f'<span class="quick-form-picture-option"><img src="{_e(image.src)}" alt="{_e(image.label)}">{caption}</span></label>'
            )
        return '<div class="quick-form-picture-select" role="radiogroup">' + "".join(options) + "</div>"

    def designer_html(self, instance):
        attrs = self.parse_attributes(instance)
        return _designer_block(attrs, self._body(instance, attrs, None, disabled=True))

    def form_html(self, instance, value=None, invalid=False):
        attrs = self.parse_attributes(instance)
        return _field_block(instance, attrs, self._body(instance, attrs, self._option_index(attrs, value)), invalid)

    def coerce(self, instance, value):
        attrs = self.parse_attributes(instance)
        index = self._option_index(attrs, value)
        return None if index is None else self._option_value(attrs.images[index])

    async def capture(self, instance, form):
        try:
            index = int(_form_text(form, instance.id) or "")
        except ValueError:
            return None
        attrs = self.parse_attributes(instance)
        if not 0 <= index < len(attrs.images):
            return None
        return self._option_value(attrs.images[index])


class RatingScaleFieldContract(FieldContract):
    type = FieldType.RATING_SCALE
    attributes = RatingScaleAttributes
    designer_label = "Rating Scale"
    defaults = {
        "label": "Rating Scale",
        "helperText": "Select a value",
        "required": False,
        "question": "Rate your experience",
        "minLabel": "Poor",
        "midLabel": "Average",
        "maxLabel": "Excellent",
        "minValue": 1,
        "maxValue": 10,
        "colorScheme": "blue",
        "gradientScheme": None,
    }
    # The hidden input carries the selection as a numeric string, "" when unset
    embed_builder = """function (field) {
      var a = field.attrs;
      var root = shell(field);
      var question = el('div', 'quick-form-question', a.question);
      question.style.color = field.labelColors.middle;
      var scale = el('div', 'quick-form-rating-scale');
      var row = el('div', 'quick-form-rating-buttons');
      var hidden = el('input');
      hidden.type = 'hidden';
      hidden.id = controlId(field);
      hidden.name = field.id;
      hidden.value = '';
      var buttons = [];
      field.buttons.forEach(function (entry) {
        var button = el('button', 'quick-form-rating-button', String(entry.value));
        button.type = 'button';
        button.setAttribute('aria-label', 'Select ' + entry.value);
        button.style.setProperty('--qf-rating-selected', entry.selected);
        button.style.setProperty('--qf-rating-border', entry.border);
        button.style.setProperty('--qf-rating-hover', entry.hover);
        button.addEventListener('click', function () {
          buttons.forEach(function (other) { other.classList.remove('selected'); });
          button.classList.add('selected');
          hidden.value = String(entry.value);
        });
        buttons.push(button);
        row.appendChild(button);
      });
      var labels = el('div', 'quick-form-rating-labels');
      [['start', a.minLabel], ['middle', a.midLabel], ['end', a.maxLabel]].forEach(function (pair) {
        var span = el('span', null, pair[1]);
        span.style.color = field.labelColors[pair[0]];
        labels.appendChild(span);
      });
      scale.appendChild(row);
      scale.appendChild(labels);
      root.appendChild(question);
      root.appendChild(scale);
      root.appendChild(hidden);
      root.appendChild(helper(field));
      return control(field, root, function () {
        if (hidden.value === '') return Promise.resolve(undefined);
        return Promise.resolve({ value: parseInt(hidden.value, 10), minValue: a.minValue, maxValue: a.maxValue });
      }, function (value) { return !(value && typeof value.value === 'number' && !isNaN(value.value)); });
    }"""

    def is_empty(self, value):
        if isinstance(value, dict):
            return value.get("value") is None or value.get("value") == ""
        return value is None or value == ""

    def _buttons(self, attrs) -> List[Dict[str, Any]]:
        return [
            dict(value=v, **rating_colors(v, attrs.minValue, attrs.maxValue, attrs.colorScheme, attrs.gradientScheme))
            for v in range(attrs.minValue, attrs.maxValue + 1)
        ]

    def _label_colors(self, attrs) -> Dict[str, str]:
        return {p: rating_label_color(p, attrs.colorScheme, attrs.gradientScheme) for p in ("start", "middle", "end")}

    def _body(self, instance, attrs, selected: Optional[int], disabled=False) -> str:
        colors = self._label_colors(attrs)
        buttons = []
        for entry in self._buttons(attrs):
            checked = " checked" if selected == entry["value"] else ""
            extra = " disabled" if disabled else ""
            style = (
                f"--qf-rating-selected: {entry['selected']}; --qf-rating-border: {entry['border']}; "
                f"--qf-rating-hover: {entry['hover']}"
            )
            buttons.append(
                f'<label><input class="quick-form-rating-radio quick-form-sr-only" type="radio" '
                f'id="{_e(dom_id(instance, "-" + str(entry["value"])))}" name="{_e(instance.id)}" value="{entry["value"]}"{checked}{extra}>'
                f'<span class="quick-form-rating-button" style="{style}" aria-label="Select {entry["value"]}">{entry["value"]}</span></label>'
            )
        labels = "".join(
            f'<span style="color: {colors[pos]}">{_e(text)}</span>'
            for pos, text in (("start", attrs.minLabel), ("middle", attrs.midLabel), ("end", attrs.maxLabel))
        )
        return (
            f'<div class="quick-form-question" style="color: {colors["middle"]}">{_e(attrs.question)}</div>'
            '<div class="quick-form-rating-scale">'
            f'<div class="quick-form-rating-buttons">{"".join(buttons)}</div>'
            f'<div class="quick-form-rating-labels">{labels}</div>'
            '</div>'
        )

    def designer_html(self, instance):
        attrs = self.parse_attributes(instance)
        return _designer_block(attrs, self._body(instance, attrs, None, disabled=True))

    def form_html(self, instance, value=None, invalid=False):
        attrs = self.parse_attributes(instance)
        selected = value.get("value") if isinstance(value, dict) else None
        return _field_block(instance, attrs, self._body(instance, attrs, selected), invalid)

    def embed_props(self, instance):
        props = super().embed_props(instance)
        attrs = self.parse_attributes(instance)
        props["buttons"] = self._buttons(attrs)
        props["labelColors"] = self._label_colors(attrs)
        return props

    def coerce(self, instance, value):
        if isinstance(value, dict):
            value = value.get("value")
        if isinstance(value, str):
            try:
                value = int(value)
            except ValueError:
                return None
        elif isinstance(value, float) and value.is_integer():
            value = int(value)
        if not isinstance(value, int) or isinstance(value, bool):
            return None
        attrs = self.parse_attributes(instance)
        if value < attrs.minValue or value > attrs.maxValue:
            return None
        return {"value": value, "minValue": attrs.minValue, "maxValue": attrs.maxValue}

    async def capture(self, instance, form):
        return self.coerce(instance, _form_text(form, instance.id))


# --------------
# Registry
# --------------

FIELD_REGISTRY: Mapping[FieldType, FieldContract] = {
    contract.type: contract
    for contract in (
        TextFieldContract(),
        TitleFieldContract(),
        SubTitleFieldContract(),
        ParagraphFieldContract(),
        SeparatorFieldContract(),
        SpacerFieldContract(),
        NumberFieldContract(),
        TextAreaFieldContract(),
        DateFieldContract(),
        SelectFieldContract(),
        CheckboxFieldContract(),
        ImageUploadFieldContract(),
        RatingScaleFieldContract(),
        DualImageUploadFieldContract(),
        PictureSelectFieldContract(),
    )
}

_missing = set(FieldType) - set(FIELD_REGISTRY)
if _missing:
    raise RuntimeError(f"Field types without a contract: {sorted(t.value for t in _missing)}")


def get_contract(tag) -> FieldContract:
    """Look up the contract for a FieldType or its wire tag."""
    try:
        return FIELD_REGISTRY[FieldType(tag)]
    except ValueError:
        raise UnknownFieldTypeError(f"Unknown field type: {tag!r}")


def construct(tag, field_id: str) -> FieldInstance:
    return get_contract(tag).construct(field_id)


def palette() -> List[Dict[str, Any]]:
    """Designer palette: every field type with its button label and defaults."""
    return [
        {
            "type": contract.type.value,
            "label": contract.designer_label,
            "isInput": contract.is_input,
            "extraAttributes": copy.deepcopy(dict(contract.defaults)),
        }
        for contract in FIELD_REGISTRY.values()
    ]
