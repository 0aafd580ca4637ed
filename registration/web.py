"""Server-rendered registration page with Register and Users tabs."""

from __future__ import annotations

import html
import logging
from datetime import timedelta
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from .form import FormState, submit_form, visible_error
from .models import FIELD_NAMES, RegistrationInput, UserRecord
from .storage import StorageError
from .store import RegistrationStore
from .validation import parse_birth_date

logger = logging.getLogger("registration.web")

_FIELD_WIDGETS: Tuple[Tuple[str, str, str, str, str], ...] = (
    ("fullName", "Full Name", "text", "John Doe", "name"),
    ("email", "Email Address", "email", "john@example.com", "email"),
    ("phone", "Phone Number", "tel", "+1 (555) 123-4567", "tel"),
    ("dateOfBirth", "Date of Birth", "date", "", "bday"),
    ("password", "Password", "password", "••••••••", "new-password"),
    ("confirmPassword", "Confirm Password", "password", "••••••••", "new-password"),
)

_SECRET_FIELDS = {"password", "confirmPassword"}

_STYLES = """
body { font-family: system-ui, sans-serif; background: #eff6ff; margin: 0; padding: 1rem; }
.page { max-width: 56rem; margin: 0 auto; }
.header { text-align: center; margin-bottom: 1.5rem; }
.card { background: #fff; border-radius: 1rem; box-shadow: 0 10px 25px rgba(0,0,0,.1); overflow: hidden; }
.tabs { display: flex; border-bottom: 1px solid #e5e7eb; }
.tab { flex: 1; padding: .9rem; text-align: center; font-weight: 600; color: #4b5563; background: #f9fafb; text-decoration: none; }
.tab--active { background: #2563eb; color: #fff; }
.content { padding: 1.5rem; }
.alert { margin: 1rem 1.5rem 0; padding: .75rem 1rem; border-radius: .5rem; }
.alert--success { background: #f0fdf4; border: 1px solid #bbf7d0; color: #166534; }
.alert--error { background: #fef2f2; border: 1px solid #fecaca; color: #991b1b; }
.form__group { margin-bottom: 1rem; }
.form__label { display: block; font-size: .875rem; font-weight: 500; margin-bottom: .35rem; }
.form__input { width: 100%; box-sizing: border-box; padding: .7rem; border: 1px solid #d1d5db; border-radius: .5rem; }
.form__input--invalid { border-color: #ef4444; }
.form__error { color: #dc2626; font-size: .875rem; margin-top: .35rem; }
.button { width: 100%; padding: .8rem; border: 0; border-radius: .5rem; background: #2563eb; color: #fff; font-weight: 600; cursor: pointer; }
.user { border: 1px solid #e5e7eb; border-radius: .75rem; padding: 1rem; margin-bottom: .75rem; display: flex; justify-content: space-between; }
.user__name { margin: 0 0 .35rem; }
.user__detail { margin: .1rem 0; color: #4b5563; font-size: .875rem; }
.button--danger { width: auto; background: #fee2e2; color: #b91c1c; }
.empty { text-align: center; color: #6b7280; padding: 2rem 0; }
.footer { text-align: center; color: #6b7280; font-size: .875rem; margin-top: 1.5rem; }
"""

_FIELD_SCRIPT = """
(function () {
  var form = document.getElementById("registration-form");
  if (!form || !form.dataset.validateUrl) { return; }
  var touched = {};
  function showError(name, message) {
    var input = form.elements[name];
    var slot = document.getElementById(name + "-error");
    if (!input || !slot) { return; }
    slot.textContent = message || "";
    slot.hidden = !message;
    input.classList.toggle("form__input--invalid", Boolean(message));
  }
  function check(name) {
    var input = form.elements[name];
    var payload = { field: name, value: input.value, password: form.elements.password.value };
    fetch(form.dataset.validateUrl, {
      method: "POST",
      headers: { "Content-Type": "application/json" },
      body: JSON.stringify(payload)
    }).then(function (response) { return response.json(); })
      .then(function (result) { showError(name, result.error); })
      .catch(function () {});
  }
  Array.prototype.forEach.call(form.querySelectorAll("input[name]"), function (input) {
    input.addEventListener("blur", function () { touched[input.name] = true; check(input.name); });
    input.addEventListener("input", function () { if (touched[input.name]) { check(input.name); } });
  });
})();
(function () {
  var banner = document.getElementById("success-banner");
  if (!banner) { return; }
  var delay = parseInt(banner.dataset.hideAfter || "3000", 10);
  window.setTimeout(function () { banner.hidden = true; }, delay);
})();
"""


def _format_birth_date(value: str) -> str:
    parsed = parse_birth_date(value)
    if parsed is None:
        return value
    return parsed.strftime("%d %b %Y")


def register_ui_routes(
    app: FastAPI,
    store: RegistrationStore,
    *,
    title: str = "User Registration",
    success_duration: timedelta = timedelta(seconds=3),
    validate_url: Optional[str] = "/api/validate",
) -> None:
    """Expose the HTML registration page on the provided FastAPI app."""

    router = APIRouter(include_in_schema=False)

    def _build_base_markup(
        request: Request,
        *,
        active_tab: str,
        user_count: int,
        content: str,
        banner: str = "",
    ) -> str:
        register_url = request.url_for("ui_register")
        users_url = request.url_for("ui_users")
        register_class = "tab tab--active" if active_tab == "register" else "tab"
        users_class = "tab tab--active" if active_tab == "users" else "tab"
        tabs = (
            '<nav class="tabs" aria-label="Sections">'
            f'<a href="{register_url}" class="{register_class}">Register</a>'
            f'<a href="{users_url}" class="{users_class}">Users ({user_count})</a>'
            "</nav>"
        )
        safe_title = html.escape(title)
        return (
            "<!DOCTYPE html>\n"
            "<html lang=\"en\">\n"
            "  <head>\n"
            "    <meta charset=\"utf-8\" />\n"
            "    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />\n"
            f"    <title>{safe_title}</title>\n"
            f"    <style>{_STYLES}</style>\n"
            "  </head>\n"
            "  <body>\n"
            "    <main class=\"page\">\n"
            "      <header class=\"header\">\n"
            f"        <h1>{safe_title}</h1>\n"
            "        <p>Create your account with secure validation</p>\n"
            "      </header>\n"
            "      <section class=\"card\">\n"
            f"        {tabs}\n"
            f"        {banner}\n"
            f"        <div class=\"content\">{content}</div>\n"
            "      </section>\n"
            "      <footer class=\"footer\"><p>All data is stored locally on this server</p></footer>\n"
            "    </main>\n"
            f"    <script>{_FIELD_SCRIPT}</script>\n"
            "  </body>\n"
            "</html>"
        )

    def _render_field(state: FormState, name: str, label: str, kind: str, placeholder: str, autocomplete: str) -> str:
        error = visible_error(state, name)
        value = "" if name in _SECRET_FIELDS else state.values.get(name)
        input_class = "form__input form__input--invalid" if error else "form__input"
        error_html = html.escape(error) if error else ""
        hidden = "" if error else " hidden"
        placeholder_attr = f' placeholder="{html.escape(placeholder)}"' if placeholder else ""
        return (
            '<div class="form__group">'
            f'<label class="form__label" for="{name}">{html.escape(label)}</label>'
            f'<input class="{input_class}" type="{kind}" id="{name}" name="{name}" '
            f'value="{html.escape(value)}" autocomplete="{autocomplete}"{placeholder_attr} />'
            f'<p class="form__error" id="{name}-error"{hidden}>{error_html}</p>'
            "</div>"
        )

    def _render_register_markup(request: Request, state: FormState, *, show_success: bool) -> str:
        fields = "".join(_render_field(state, *widget) for widget in _FIELD_WIDGETS)
        validate_attr = f' data-validate-url="{html.escape(validate_url)}"' if validate_url else ""
        body = (
            f'<form id="registration-form" method="post" action="{request.url_for("ui_register_submit")}"'
            f"{validate_attr} novalidate>"
            f"{fields}"
            '<button type="submit" class="button">Register Now</button>'
            "</form>"
        )
        banner = ""
        if show_success:
            hide_after = int(success_duration.total_seconds() * 1000)
            banner = (
                f'<div id="success-banner" class="alert alert--success" role="status" '
                f'data-hide-after="{hide_after}">Registration successful!</div>'
            )
        return _build_base_markup(
            request,
            active_tab="register",
            user_count=len(store),
            content=body,
            banner=banner,
        )

    def _render_user(request: Request, record: UserRecord) -> str:
        delete_url = request.url_for("ui_user_delete", user_id=record.id)
        return (
            '<article class="user">'
            "<div>"
            f'<h3 class="user__name">{html.escape(record.full_name)}</h3>'
            f'<p class="user__detail">{html.escape(record.email)}</p>'
            f'<p class="user__detail">{html.escape(record.phone)}</p>'
            f'<p class="user__detail">{html.escape(_format_birth_date(record.date_of_birth))}</p>'
            "</div>"
            f'<form method="post" action="{delete_url}">'
            '<button type="submit" class="button button--danger" aria-label="Delete user">Delete</button>'
            "</form>"
            "</article>"
        )

    def _render_users_markup(request: Request, records: List[UserRecord]) -> str:
        if records:
            body = "".join(_render_user(request, record) for record in records)
        else:
            body = '<p class="empty">No users registered yet</p>'
        return _build_base_markup(
            request,
            active_tab="users",
            user_count=len(records),
            content=body,
        )

    def _render_storage_error(request: Request) -> HTMLResponse:
        body = (
            '<div class="alert alert--error">'
            "Registration storage is unavailable. Please try again later."
            "</div>"
        )
        markup = _build_base_markup(request, active_tab="register", user_count=0, content=body)
        return HTMLResponse(markup, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    async def _parse_registration_form(request: Request) -> Dict[str, str]:
        body_bytes = await request.body()
        content_type = request.headers.get("content-type", "")
        charset = "utf-8"
        if "charset=" in content_type:
            charset = content_type.split("charset=", 1)[1].split(";", 1)[0].strip() or "utf-8"
        try:
            decoded = body_bytes.decode(charset)
        except (LookupError, UnicodeDecodeError):
            decoded = body_bytes.decode("utf-8", errors="ignore")
        data = parse_qs(decoded, keep_blank_values=True)
        return {name: data.get(name, [""])[0] for name in FIELD_NAMES}

    @router.get("/", response_class=HTMLResponse, name="ui_register")
    async def register_page(request: Request, registered: Optional[str] = None):
        markup = _render_register_markup(request, FormState(), show_success=bool(registered))
        return HTMLResponse(markup)

    @router.post("/register", name="ui_register_submit")
    async def register_submit(request: Request):
        values = RegistrationInput.from_mapping(await _parse_registration_form(request))
        outcome = submit_form(FormState(values=values), success_duration=success_duration)
        if not outcome.succeeded:
            logger.info("Rejected registration with invalid fields: %s", ", ".join(sorted(outcome.state.errors)))
            markup = _render_register_markup(request, outcome.state, show_success=False)
            return HTMLResponse(markup, status_code=status.HTTP_400_BAD_REQUEST)

        assert outcome.accepted is not None
        try:
            store.register(outcome.accepted)
        except StorageError as exc:
            logger.error("Unable to store registration: %s", exc)
            return _render_storage_error(request)

        target = request.url_for("ui_register").include_query_params(registered="1")
        return RedirectResponse(str(target), status_code=status.HTTP_303_SEE_OTHER)

    @router.get("/users", response_class=HTMLResponse, name="ui_users")
    async def users_page(request: Request):
        return HTMLResponse(_render_users_markup(request, store.load_all()))

    @router.post("/users/{user_id}/delete", name="ui_user_delete")
    async def delete_user(user_id: str, request: Request):
        try:
            store.remove_by_id(user_id)
        except StorageError as exc:
            logger.error("Unable to remove user %s: %s", user_id, exc)
            return _render_storage_error(request)
        return RedirectResponse(request.url_for("ui_users"), status_code=status.HTTP_303_SEE_OTHER)

    app.include_router(router)


__all__ = ["register_ui_routes"]
