"""
forms.py
--------
HTML form builders used by the Jinja templates. Every builder returns
``markupsafe.Markup``: plain strings passed in (values, labels, attributes)
are escaped, while Markup passed in (nested builder output) is kept as is.
Interactive widgets append a small inline script; ids are embedded into
those scripts as JSON so they cannot break out of the script context.
"""

import math
import re
import secrets
from dataclasses import dataclass
from typing import List, Mapping, Optional

from jinja2.utils import htmlsafe_json_dumps
from markupsafe import Markup, escape

from billing_app import config
from billing_app.context import RequestContext
from billing_app.csrf import generate_csrf_token

INPUT_CLASS = ("w-full px-3 py-2 border border-gray-300 rounded-md shadow-sm focus:outline-none "
               "focus:ring-indigo-500 focus:border-indigo-500 sm:text-sm")
CHECK_CLASS = "h-4 w-4 text-indigo-600 focus:ring-indigo-500 border-gray-300 rounded"
SUBMIT_CLASS = ("w-full flex justify-center py-2 px-4 border border-transparent rounded-md shadow-sm "
                "text-sm font-medium text-white bg-indigo-600 hover:bg-indigo-700 focus:outline-none "
                "focus:ring-2 focus:ring-offset-2 focus:ring-indigo-500")
BUTTON_CLASS = ("py-2 px-4 border border-transparent rounded-md shadow-sm text-sm font-medium "
                "text-white bg-indigo-600 hover:bg-indigo-700 focus:outline-none focus:ring-2 "
                "focus:ring-offset-2 focus:ring-indigo-500")
LABEL_CLASS = "block text-sm font-medium text-gray-700 mb-1"
PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


def _attrs(attributes: Optional[Mapping] = None, default_class: Optional[str] = None) -> Markup:
    attributes = dict(attributes or {})
    if default_class and "class" not in attributes:
        attributes["class"] = default_class

    parts = []
    for key, value in attributes.items():
        if value is None or value is False:
            continue
        if value is True:
            parts.append(Markup(" {}").format(key))
        else:
            parts.append(Markup(' {}="{}"').format(key, value))
    return Markup("").join(parts)


def _label(name, label, required=False) -> Markup:
    if not label:
        return Markup("")
    star = Markup(' <span class="text-red-500">*</span>') if required else Markup("")
    return Markup('<label for="{}" class="{}">{}{}</label>').format(name, LABEL_CLASS, label, star)


def _script(body: str, **values) -> Markup:
    """Inline DOMContentLoaded script; values are substituted as JSON literals."""
    def substitute(match):
        key = match.group(1)
        if key not in values:
            return match.group(0)
        return str(htmlsafe_json_dumps(values[key]))

    rendered = PLACEHOLDER_RE.sub(substitute, body)
    return Markup('<script>document.addEventListener("DOMContentLoaded", function() {')\
        + Markup(rendered) + Markup("});</script>")


def _widget_id(prefix):
    return f"{prefix}_{secrets.token_hex(3)}"


# ------------------------------------------------------------
# Basic fields
# ------------------------------------------------------------
def form_open(ctx: RequestContext, action="", method="post", attributes=None) -> Markup:
    html = Markup('<form action="{}" method="{}"{}>').format(action, method, _attrs(attributes))
    if method.lower() == "post":
        html += form_hidden(config.CSRF_FIELD_NAME, generate_csrf_token(ctx))
    return html


def form_close() -> Markup:
    return Markup("</form>")


def form_hidden(name, value) -> Markup:
    return Markup('<input type="hidden" name="{}" value="{}">').format(name, value)


def form_input(type, name, label="", value="", attributes=None, required=False) -> Markup:
    value = "" if value is None else value
    return _label(name, label, required) + Markup(
        '<input type="{}" name="{}" id="{}" value="{}"{}{}>'
    ).format(type, name, name, value, Markup(" required") if required else "",
             _attrs(attributes, INPUT_CLASS))


def form_textarea(name, label="", value="", attributes=None, required=False) -> Markup:
    value = "" if value is None else value
    return _label(name, label, required) + Markup(
        '<textarea name="{}" id="{}"{}{}>{}</textarea>'
    ).format(name, name, Markup(" required") if required else "",
             _attrs(attributes, INPUT_CLASS), value)


def form_select(name, options, label="", selected="", attributes=None, required=False) -> Markup:
    items = options.items() if isinstance(options, Mapping) else options
    rendered = []
    for value, option_label in items:
        is_selected = Markup(" selected") if str(value) == str(selected) else ""
        rendered.append(Markup('<option value="{}"{}>{}</option>').format(value, is_selected, option_label))

    return _label(name, label, required) + Markup('<select name="{}" id="{}"{}{}>{}</select>').format(
        name, name, Markup(" required") if required else "",
        _attrs(attributes, INPUT_CLASS), Markup("").join(rendered))


def form_checkbox_radio(type, name, value, label, checked=False, attributes=None) -> Markup:
    field_id = f"{name}_{value}"
    return Markup(
        '<div class="flex items-center">'
        '<input type="{}" name="{}" id="{}" value="{}"{}{}>'
        '<label for="{}" class="ml-2 block text-sm text-gray-700">{}</label>'
        '</div>'
    ).format(type, name, field_id, value, Markup(" checked") if checked else "",
             _attrs(attributes, CHECK_CLASS), field_id, label)


def form_file(name, label="", attributes=None, required=False,
              hint="PNG, JPG, GIF or PDF up to 5MB") -> Markup:
    return _label(name, label, required) + Markup(
        '<div class="mt-1 flex justify-center px-6 pt-5 pb-6 border-2 border-gray-300 border-dashed rounded-md">'
        '<div class="space-y-1 text-center">'
        '<label for="{}" class="relative cursor-pointer rounded-md font-medium text-indigo-600 hover:text-indigo-500">'
        '<span>Upload a file</span>'
        '<input type="file" name="{}" id="{}"{}{}>'
        '</label>'
        '<p class="text-xs text-gray-500">{}</p>'
        '</div></div>'
    ).format(name, name, name, Markup(" required") if required else "",
             _attrs(attributes, "sr-only"), hint)


def form_submit(text="Submit", attributes=None) -> Markup:
    return Markup('<button type="submit"{}>{}</button>').format(_attrs(attributes, SUBMIT_CLASS), text)


def form_button(text, type="button", attributes=None) -> Markup:
    return Markup('<button type="{}"{}>{}</button>').format(type, _attrs(attributes, BUTTON_CLASS), text)


def form_error(errors, field) -> Markup:
    if not errors or field not in errors:
        return Markup("")
    return Markup('<p class="mt-1 text-sm text-red-600">{}</p>').format(errors[field])


def form_group(type, name, label="", value="", attributes=None, required=False, error="") -> Markup:
    """Label, field and error message wrapped in one block.

    For ``select`` the ``value`` is the options mapping and the current
    choice is passed as ``attributes["selected"]``.
    """
    attributes = dict(attributes or {})
    if type == "textarea":
        field = form_textarea(name, label, value, attributes, required)
    elif type == "select":
        selected = attributes.pop("selected", "")
        field = form_select(name, value, label, selected, attributes, required)
    elif type == "file":
        field = form_file(name, label, attributes, required)
    else:
        field = form_input(type, name, label, value, attributes, required)

    message = Markup('<p class="mt-1 text-sm text-red-600">{}</p>').format(error) if error else ""
    return Markup('<div class="mb-4">{}{}</div>').format(field, message)


def display_errors(errors) -> Markup:
    if not errors:
        return Markup("")
    messages = errors.values() if isinstance(errors, Mapping) else errors
    items = Markup("").join(Markup("<li>{}</li>").format(message) for message in messages)
    return Markup(
        '<div class="bg-red-50 p-4 rounded-md mb-4" role="alert">'
        '<h3 class="text-sm font-medium text-red-800">Please fix the following errors:</h3>'
        '<ul class="mt-2 list-disc pl-5 space-y-1 text-sm text-red-700">{}</ul>'
        '</div>'
    ).format(items)


def display_success(message) -> Markup:
    if not message:
        return Markup("")
    return Markup(
        '<div class="bg-green-50 p-4 rounded-md mb-4" role="status">'
        '<p class="text-sm font-medium text-green-800">{}</p>'
        '</div>'
    ).format(message)


# ------------------------------------------------------------
# Interactive widgets
# ------------------------------------------------------------
def quantity_input(name, value=1, min=1, max=100, label="", input_id=None) -> Markup:
    input_id = input_id or f"{name}_qty"
    html = Markup('<div class="quantity-input">') + _label(input_id, label) + Markup(
        '<div class="flex rounded-md shadow-sm">'
        '<button type="button" class="qty-minus px-2 py-2 border border-r-0 border-gray-300 rounded-l-md bg-gray-50">'
        '<span class="sr-only">Decrease</span>&minus;</button>'
        '<input type="number" id="{}" name="{}" value="{}" min="{}" max="{}" '
        'class="qty-input block w-14 text-center border-gray-300 sm:text-sm">'
        '<button type="button" class="qty-plus px-2 py-2 border border-l-0 border-gray-300 rounded-r-md bg-gray-50">'
        '<span class="sr-only">Increase</span>+</button>'
        '</div></div>'
    ).format(input_id, name, value, min, max)

    return html + _script(
        'const input = document.getElementById({id});'
        'if (!input) { return; }'
        'function step(delta) {'
        '  const next = parseInt(input.value || "0", 10) + delta;'
        '  if (next < parseInt(input.min, 10) || next > parseInt(input.max, 10)) { return; }'
        '  input.value = next;'
        '  input.dispatchEvent(new Event("change"));'
        '}'
        'input.parentNode.querySelector(".qty-minus").addEventListener("click", function() { step(-1); });'
        'input.parentNode.querySelector(".qty-plus").addEventListener("click", function() { step(1); });',
        id=input_id,
    )


def character_counter(input_id, max_length) -> Markup:
    counter_id = f"char_counter_{input_id}"
    html = Markup('<div id="{}" class="text-xs text-gray-500 mt-1 text-right">0/{} characters</div>')\
        .format(counter_id, max_length)

    return html + _script(
        'const input = document.getElementById({input});'
        'const counter = document.getElementById({counter});'
        'const limit = {limit};'
        'if (!input || !counter) { return; }'
        'function updateCount() {'
        '  const length = input.value.length;'
        '  counter.textContent = length + "/" + limit + " characters";'
        '  counter.classList.toggle("text-red-500", length > limit);'
        '  counter.classList.toggle("text-gray-500", length <= limit);'
        '}'
        'input.addEventListener("input", updateCount);'
        'updateCount();',
        input=input_id, counter=counter_id, limit=int(max_length),
    )


def mobile_dropdown_menu(label, items, dropdown_id=None) -> Markup:
    """Button that toggles a menu of ``{"url", "label"}`` items; closes on outside click."""
    dropdown_id = dropdown_id or _widget_id("dropdown")
    links = Markup("").join(
        Markup('<a href="{}" class="block px-4 py-3 text-sm text-gray-700 hover:bg-gray-100" '
               'role="menuitem">{}</a>').format(item["url"], item["label"])
        for item in items
    )
    html = Markup(
        '<div class="relative inline-block text-left">'
        '<button type="button" id="{0}_button" aria-expanded="false" aria-haspopup="true" '
        'class="inline-flex items-center justify-center w-full rounded-md border border-gray-300 '
        'shadow-sm px-4 py-2 bg-white text-sm font-medium text-gray-700 hover:bg-gray-50">{1}</button>'
        '<div id="{0}_menu" class="hidden origin-top-right absolute right-0 mt-2 w-56 rounded-md '
        'shadow-lg bg-white ring-1 ring-black ring-opacity-5 z-10" role="menu" '
        'aria-labelledby="{0}_button"><div class="py-1">{2}</div></div>'
        '</div>'
    ).format(dropdown_id, label, links)

    return html + _script(
        'const button = document.getElementById({button});'
        'const menu = document.getElementById({menu});'
        'if (!button || !menu) { return; }'
        'button.addEventListener("click", function() {'
        '  const expanded = button.getAttribute("aria-expanded") === "true";'
        '  button.setAttribute("aria-expanded", String(!expanded));'
        '  menu.classList.toggle("hidden");'
        '});'
        'document.addEventListener("click", function(event) {'
        '  if (!button.contains(event.target) && !menu.contains(event.target)) {'
        '    button.setAttribute("aria-expanded", "false");'
        '    menu.classList.add("hidden");'
        '  }'
        '});',
        button=f"{dropdown_id}_button", menu=f"{dropdown_id}_menu",
    )


def dynamic_field_template(content) -> Markup:
    return Markup(
        '<div class="dynamic-field relative border border-gray-200 rounded-md p-4 mb-2">{}'
        '<button type="button" class="remove-field absolute top-2 right-2 text-gray-400 hover:text-gray-500">'
        '<span class="sr-only">Remove</span>&times;</button>'
        '</div>'
    ).format(content)


def dynamic_field_adder(container_id, template_html, button_text="Add Another") -> Markup:
    """Repeatable rows; ``{index}`` in the template is replaced with a running counter."""
    html = Markup(
        '<div id="{0}"></div>'
        '<template id="{0}_template">{1}</template>'
        '<div class="mt-2">'
        '<button type="button" id="{0}_add" class="inline-flex items-center px-3 py-2 border '
        'border-transparent shadow-sm text-sm font-medium rounded-md text-white bg-indigo-600 '
        'hover:bg-indigo-700">{2}</button>'
        '</div>'
    ).format(container_id, template_html, button_text)

    return html + _script(
        'const container = document.getElementById({container});'
        'const template = document.getElementById({template});'
        'const addButton = document.getElementById({add});'
        'if (!container || !template || !addButton) { return; }'
        'let fieldIndex = container.children.length;'
        'function bindRemove(field) {'
        '  const remove = field.querySelector(".remove-field");'
        '  if (remove) { remove.addEventListener("click", function() { field.remove(); }); }'
        '}'
        'addButton.addEventListener("click", function() {'
        '  const holder = document.createElement("div");'
        '  holder.innerHTML = template.innerHTML.split("{index}").join(String(fieldIndex));'
        '  const field = holder.firstElementChild;'
        '  bindRemove(field);'
        '  container.appendChild(field);'
        '  fieldIndex++;'
        '});'
        'container.querySelectorAll(".dynamic-field").forEach(bindRemove);',
        container=container_id, template=f"{container_id}_template", add=f"{container_id}_add",
    )


def conditional_field(trigger_field_id, trigger_value, content, is_select=False, container_id=None) -> Markup:
    """Content shown only while the trigger field holds ``trigger_value``."""
    container_id = container_id or _widget_id("conditional")
    html = Markup('<div id="{}" class="hidden mt-4">{}</div>').format(container_id, content)

    if is_select:
        current = 'const matches = trigger.options[trigger.selectedIndex].value === expected;'
    else:
        current = ('const checked = trigger.type === "checkbox" || trigger.type === "radio" ? trigger.checked : true;'
                   'const matches = trigger.value === expected && checked;')

    return html + _script(
        'const container = document.getElementById({container});'
        'const trigger = document.getElementById({trigger});'
        'const expected = {expected};'
        'if (!container || !trigger) { return; }'
        'function checkVisibility() {'
        + current +
        '  container.classList.toggle("hidden", !matches);'
        '}'
        'trigger.addEventListener("change", checkVisibility);'
        'checkVisibility();',
        container=container_id, trigger=trigger_field_id, expected=str(trigger_value),
    )


def form_star_rating(name, value=0) -> Markup:
    try:
        value = int(float(value or 0))
    except (TypeError, ValueError, OverflowError):
        value = 0
    value = min(max(value, 0), 5)
    stars = Markup("").join(
        Markup('<button type="button" id="{0}_star_{1}" data-value="{1}" '
               'class="star-btn {2} h-8 w-8 text-2xl focus:outline-none">&#9733;</button>')
        .format(name, i, "text-yellow-400" if i <= value else "text-gray-300")
        for i in range(1, 6)
    )
    html = Markup(
        '<div class="star-rating" id="{0}_rating">'
        '<input type="hidden" name="{0}" id="{0}" value="{1}">'
        '<div class="flex items-center">{2}</div>'
        '</div>'
    ).format(name, value, stars)

    return html + _script(
        'const input = document.getElementById({input});'
        'const wrapper = document.getElementById({wrapper});'
        'if (!input || !wrapper) { return; }'
        'const stars = wrapper.querySelectorAll(".star-btn");'
        'stars.forEach(function(star) {'
        '  star.addEventListener("click", function() {'
        '    const chosen = parseInt(star.dataset.value, 10);'
        '    input.value = chosen;'
        '    stars.forEach(function(other) {'
        '      const lit = parseInt(other.dataset.value, 10) <= chosen;'
        '      other.classList.toggle("text-yellow-400", lit);'
        '      other.classList.toggle("text-gray-300", !lit);'
        '    });'
        '  });'
        '});',
        input=name, wrapper=f"{name}_rating",
    )


def form_stepper(steps, current_step) -> Markup:
    """Numbered progress list; steps are ``{"title", "description"}`` dicts."""
    items = []
    for index, step in enumerate(steps):
        if index < current_step:
            status, badge = "complete", Markup("&#10003;")
        elif index == current_step:
            status, badge = "current", escape(index + 1)
        else:
            status, badge = "upcoming", escape(index + 1)

        items.append(Markup(
            '<li class="relative pb-6 step-{0}"{1}>'
            '<span class="inline-flex h-8 w-8 items-center justify-center rounded-full {2}">{3}</span>'
            '<span class="ml-3 text-sm font-medium">{4}</span>'
            '<p class="ml-11 text-sm text-gray-500">{5}</p>'
            '</li>'
        ).format(
            status,
            Markup(' aria-current="step"') if status == "current" else "",
            "bg-indigo-600 text-white" if status != "upcoming" else "border-2 border-gray-300 text-gray-500",
            badge,
            step.get("title", ""),
            step.get("description", ""),
        ))

    return Markup('<nav aria-label="Progress" class="mb-8"><ol role="list">{}</ol></nav>')\
        .format(Markup("").join(items))


def form_loading_indicator(form_id, button_text="Submit", loading_text="Processing...") -> Markup:
    return _script(
        'const form = document.getElementById({form});'
        'if (!form) { return; }'
        'form.addEventListener("submit", function() {'
        '  const button = form.querySelector("button[type=submit]");'
        '  if (button && button.textContent.trim() === {idle}) {'
        '    button.textContent = {busy};'
        '    button.disabled = true;'
        '    button.classList.add("opacity-75", "cursor-wait");'
        '  }'
        '});',
        form=form_id, idle=button_text, busy=loading_text,
    )


# ------------------------------------------------------------
# Tables and pagination
# ------------------------------------------------------------
def sortable_header(column, label, current_sort, current_order, url_pattern) -> Markup:
    next_order = "desc" if current_sort == column and current_order == "asc" else "asc"
    url = url_pattern.replace("{sort}", column).replace("{order}", next_order)

    if current_sort == column:
        indicator = Markup(' <span class="sort-indicator">{}</span>').format(
            Markup("&#9650;") if current_order == "asc" else Markup("&#9660;"))
    else:
        indicator = Markup("")

    return Markup(
        '<th scope="col" class="px-6 py-3 text-left text-xs font-medium text-gray-500 uppercase tracking-wider">'
        '<a href="{}" class="group inline-flex items-center">{}{}</a>'
        '</th>'
    ).format(url, label, indicator)


@dataclass
class Page:
    total: int
    per_page: int
    page: int
    total_pages: int
    first_item: int
    last_item: int

    @property
    def has_prev(self):
        return self.page > 1

    @property
    def has_next(self):
        return self.page < self.total_pages

    @property
    def offset(self):
        return (self.page - 1) * self.per_page

    def window(self, radius=2) -> List[int]:
        start = max(1, self.page - radius)
        end = min(self.total_pages, self.page + radius)
        return list(range(start, end + 1))


def paginate(total, per_page, page) -> Page:
    total = max(int(total), 0)
    per_page = max(int(per_page), 1)
    total_pages = math.ceil(total / per_page)
    page = min(max(int(page), 1), max(total_pages, 1))

    if total == 0:
        first_item = last_item = 0
    else:
        first_item = (page - 1) * per_page + 1
        last_item = min(page * per_page, total)

    return Page(total, per_page, page, total_pages, first_item, last_item)


def pagination_summary(page: Page) -> str:
    return f"{page.first_item} to {page.last_item} of {page.total}"


def pagination(total, per_page, current_page, url_pattern) -> Markup:
    """Pagination nav; ``{page}`` in ``url_pattern`` is replaced with the page number."""
    page = paginate(total, per_page, current_page)
    if page.total_pages <= 1:
        return Markup("")

    def link(number, text=None, extra=""):
        return Markup('<a href="{}" class="px-3 py-2 border border-gray-300 bg-white text-sm {}">{}</a>').format(
            url_pattern.replace("{page}", str(number)), extra, text if text is not None else number)

    def inert(text, extra=""):
        return Markup('<span class="px-3 py-2 border border-gray-300 text-sm {}">{}</span>').format(extra, text)

    parts = [link(page.page - 1, "Previous", "rounded-l-md") if page.has_prev
             else inert("Previous", "rounded-l-md bg-gray-100 text-gray-400")]

    window = page.window()
    if window[0] > 1:
        parts.append(link(1))
        if window[0] > 2:
            parts.append(inert("..."))

    for number in window:
        if number == page.page:
            parts.append(Markup(
                '<span aria-current="page" class="px-3 py-2 border border-indigo-500 bg-indigo-50 '
                'text-indigo-600 text-sm font-medium">{}</span>').format(number))
        else:
            parts.append(link(number))

    if window[-1] < page.total_pages:
        if window[-1] < page.total_pages - 1:
            parts.append(inert("..."))
        parts.append(link(page.total_pages))

    parts.append(link(page.page + 1, "Next", "rounded-r-md") if page.has_next
                 else inert("Next", "rounded-r-md bg-gray-100 text-gray-400"))

    return Markup(
        '<nav class="px-4 py-3 flex flex-col sm:flex-row items-center justify-between border-t border-gray-200">'
        '<p class="text-sm text-gray-700">Showing {} results</p>'
        '<div class="inline-flex -space-x-px" aria-label="Pagination">{}</div>'
        '</nav>'
    ).format(pagination_summary(page), Markup("").join(parts))
