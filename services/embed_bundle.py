"""
Embed bundle generator.

Produces a self-contained script that rebuilds a published form inside a
foreign page and POSTs JSON to the submission sink. Host pages include it via:

    <div id="quick-form-{formId}"></div>
    <script src="{base}/api/embed/{formId}/js" async defer></script>
"""
import json
import logging
from string import Template
from typing import Any, List, Optional

from models.fields import FieldInstance
from services.field_registry import get_contract
from services.styles import build_stylesheet

logger = logging.getLogger("backend.embed")

THANK_YOU_TEXT = "Thank you for your submission!"
INVALID_TEXT = "Please check the form for errors."
ERROR_TEXT = "Failed to submit form. Please try again."


def js_literal(value: Any) -> str:
    """JSON literal that is safe inside a <script> element."""
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


def embed_code(form_id: str, base_url: str) -> dict:
    base = base_url.rstrip("/")
    script_url = f"{base}/api/embed/{form_id}/js"
    return {
        "formId": form_id,
        "scriptUrl": script_url,
        "embedCode": f'<div id="quick-form-{form_id}"></div>\n<script src="{script_url}" async defer></script>',
    }


_BUNDLE = Template("""(function () {
  'use strict';

  var FORM_ID = ${form_id};
  var SUBMIT_URL = ${submit_url};
  var FIELDS = ${fields};
  var CSS = ${css};
  var CONTAINER_ID = 'quick-form-' + FORM_ID;
  var STYLE_ID = 'quick-form-style-' + FORM_ID;
  var THANK_YOU = ${thank_you};
  var INVALID_TEXT = ${invalid_text};
  var ERROR_TEXT = ${error_text};

  function el(tag, className, text) {
    var node = document.createElement(tag);
    if (className) node.className = className;
    if (text !== undefined && text !== null) node.textContent = String(text);
    return node;
  }

  function controlId(field) {
    return 'quick-form-field-' + FORM_ID + '-' + field.id;
  }

  function shell(field, withLabel) {
    var root = el('div', 'quick-form-field');
    root.setAttribute('data-field-id', field.id);
    if (withLabel !== false) {
      var label = el('label', 'quick-form-label', field.attrs.label + (field.required ? ' *' : ''));
      label.htmlFor = controlId(field);
      root.appendChild(label);
    }
    return root;
  }

  function helper(field) {
    return el('div', 'quick-form-helper-text', field.attrs.helperText || '');
  }

  function blank(value) {
    return value === undefined || value === null || value === '';
  }

  function control(field, root, collect, isEmpty) {
    return {
      id: field.id,
      el: root,
      required: !!field.required,
      collect: collect,
      isEmpty: isEmpty || blank,
      setInvalid: function (invalid) {
        if (invalid) root.classList.add('quick-form-field--invalid');
        else root.classList.remove('quick-form-field--invalid');
      }
    };
  }

  function textControl(field, type) {
    var a = field.attrs;
    var root = shell(field);
    var input = el('input', 'quick-form-input');
    input.type = type;
    input.id = controlId(field);
    input.name = field.id;
    if (a.placeHolder) input.placeholder = a.placeHolder;
    root.appendChild(input);
    root.appendChild(helper(field));
    return control(field, root, function () {
      return Promise.resolve(input.value === '' ? undefined : input.value);
    });
  }

  function readImage(file, maxDimension) {
    return new Promise(function (resolve, reject) {
      var reader = new FileReader();
      reader.onerror = function () { reject(reader.error); };
      reader.onload = function () {
        var img = new Image();
        img.onerror = function () { reject(new Error('Unreadable image')); };
        img.onload = function () {
          var width = img.width;
          var height = img.height;
          if (width <= maxDimension && height <= maxDimension) {
            resolve(reader.result);
            return;
          }
          if (width > height) {
            height = Math.round(height / width * maxDimension);
            width = maxDimension;
          } else {
            width = Math.round(width / height * maxDimension);
            height = maxDimension;
          }
          var canvas = document.createElement('canvas');
          canvas.width = width;
          canvas.height = height;
          canvas.getContext('2d').drawImage(img, 0, 0, width, height);
          resolve(canvas.toDataURL(file.type === 'image/png' ? 'image/png' : 'image/jpeg', 0.9));
        };
        img.src = reader.result;
      };
      reader.readAsDataURL(file);
    });
  }

  function imagePicker(field, inputId, prompt, buttonText, maxDimension) {
    var wrap = el('div');
    var input = el('input', 'quick-form-sr-only');
    input.type = 'file';
    input.accept = 'image/*';
    input.id = inputId;
    var drop = el('label', 'quick-form-image-upload');
    drop.htmlFor = inputId;
    drop.appendChild(el('span', null, prompt));
    drop.appendChild(el('span', 'quick-form-file-button', buttonText));
    var chosen = el('div', 'quick-form-helper-text', 'No file chosen');
    var preview = el('img', 'quick-form-image-preview');
    preview.alt = '';
    preview.hidden = true;
    var pending = null;
    input.addEventListener('change', function () {
      var file = input.files && input.files[0];
      if (!file) {
        pending = null;
        preview.hidden = true;
        chosen.textContent = 'No file chosen';
        return;
      }
      chosen.textContent = file.name;
      // Encoding starts here; collect() hands back the same promise
      pending = readImage(file, maxDimension).then(function (url) {
        preview.src = url;
        preview.hidden = false;
        return url;
      }, function (err) {
        console.error('quick-form: could not read image', err);
        return undefined;
      });
    });
    wrap.appendChild(drop);
    wrap.appendChild(input);
    wrap.appendChild(chosen);
    wrap.appendChild(preview);
    return {
      el: wrap,
      collect: function () { return pending || Promise.resolve(undefined); }
    };
  }

  var BUILDERS = {
${builders}
  };

  function mount() {
    var container = document.getElementById(CONTAINER_ID);
    if (!container) {
      console.error('quick-form: container #' + CONTAINER_ID + ' not found');
      return;
    }
    if (!document.getElementById(STYLE_ID)) {
      var style = document.createElement('style');
      style.id = STYLE_ID;
      style.textContent = CSS;
      (document.head || document.documentElement).appendChild(style);
    }
    while (container.firstChild) container.removeChild(container.firstChild);

    var form = el('form', 'quick-form');
    form.id = 'quick-form-form-' + FORM_ID;
    form.noValidate = true;
    var controls = [];
    FIELDS.forEach(function (field) {
      var build = BUILDERS[field.type];
      if (!build) return;
      var built = build(field);
      form.appendChild(built.el);
      if (built.collect) controls.push(built);
    });

    var message = el('div', 'quick-form-error');
    message.setAttribute('role', 'alert');
    message.style.display = 'none';
    var button = el('button', 'quick-form-submit', 'Submit');
    button.type = 'submit';
    form.appendChild(message);
    form.appendChild(button);

    var busy = false;
    function showMessage(text) {
      message.textContent = text;
      message.style.display = '';
    }
    function release() {
      busy = false;
      button.disabled = false;
    }

    form.addEventListener('submit', function (event) {
      event.preventDefault();
      if (busy) return;
      busy = true;
      button.disabled = true;
      message.style.display = 'none';

      Promise.resolve().then(function () {
        // Every field's encoding is joined before the network call
        return Promise.all(controls.map(function (c) { return c.collect(); }));
      }).then(function (collected) {
        var payload = {};
        var invalid = 0;
        controls.forEach(function (c, i) {
          var value = collected[i];
          var bad = c.required && c.isEmpty(value);
          c.setInvalid(bad);
          if (bad) invalid += 1;
          if (value !== undefined) payload[c.id] = value;
        });
        if (invalid) {
          showMessage(INVALID_TEXT);
          release();
          return;
        }
        return fetch(SUBMIT_URL, {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify(payload)
        }).then(function (response) {
          if (!response.ok) throw new Error('HTTP ' + response.status);
          var done = el('div', 'quick-form');
          done.appendChild(el('div', 'quick-form-thanks', THANK_YOU));
          while (container.firstChild) container.removeChild(container.firstChild);
          container.appendChild(done);
        });
      }).catch(function (err) {
        console.error('quick-form: submission failed', err);
        showMessage(ERROR_TEXT);
        release();
      });
    });

    container.appendChild(form);
  }

  function safeMount() {
    try {
      mount();
    } catch (err) {
      console.error('quick-form: failed to render form', err);
    }
  }

  window.QuickForms = window.QuickForms || {};
  window.QuickForms[FORM_ID] = safeMount;

  if (document.readyState === 'loading') {
    document.addEventListener('DOMContentLoaded', safeMount);
  } else {
    safeMount();
  }
})();
""")


def generate_bundle(form_id: str, document: List[FieldInstance], submit_url: str, theme_name: Optional[str] = None) -> str:
    """Render the embed script for one form.

    Raises MalformedContentError when a field's attributes fail their schema.
    """
    descriptors = []
    used = []
    for field in document:
        contract = get_contract(field.type)
        descriptors.append(contract.embed_props(field))
        if contract.type not in used:
            used.append(contract.type)

    builders = ",\n".join(
        f"    {js_literal(tag.value)}: {get_contract(tag).embed_builder}" for tag in used
    )
    script = _BUNDLE.substitute(
        form_id=js_literal(form_id),
        submit_url=js_literal(submit_url),
        fields=js_literal(descriptors),
        css=js_literal(build_stylesheet(theme_name)),
        thank_you=js_literal(THANK_YOU_TEXT),
        invalid_text=js_literal(INVALID_TEXT),
        error_text=js_literal(ERROR_TEXT),
        builders=builders,
    )
    logger.debug("Generated embed bundle for form %s (%d fields, %d types)", form_id, len(document), len(used))
    return script
