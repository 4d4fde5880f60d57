"""Jinja2 rendering for stored notification templates."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
import json
from typing import TYPE_CHECKING, Any

from jinja2 import TemplateSyntaxError, UndefinedError
from jinja2.sandbox import SandboxedEnvironment

from notifyhub.core.exceptions import TemplateRenderError
from notifyhub.core.types import NotifyType
from notifyhub.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from notifyhub.features.scheduler.models import NotificationTemplate

_lazy = get_lazy_logger(__name__)

DEFAULT_TEMPLATES: tuple[dict[str, Any], ...] = (
    {
        "name": "system-alert",
        "title_template": "🚨 System Alert: {{ alert_type | default('Unknown') }}",
        "body_template": (
            "Alert Details:\n"
            "• System: {{ system | default('Unknown') }}\n"
            "• Severity: {{ severity | default('Medium') }}\n"
            "• Message: {{ message }}\n"
            "• Timestamp: {{ timestamp }}"
        ),
        "notify_type": "error",
        "variables": {"severity": "Medium", "alert_type": "System Alert"},
        "description": "System alerts",
    },
    {
        "name": "deployment-status",
        "title_template": "🚀 Deployment {{ status | default('Update') }}",
        "body_template": (
            "Deployment Information:\n"
            "• Application: {{ app_name }}\n"
            "• Version: {{ version }}\n"
            "• Environment: {{ environment | default('production') }}\n"
            "• Status: {{ status }}\n"
            "• Time: {{ timestamp }}"
        ),
        "notify_type": "success",
        "variables": {"environment": "production", "status": "completed"},
        "description": "Deployment status",
    },
    {
        "name": "monitoring-report",
        "title_template": "📊 {{ report_type | default('Monitoring') }} Report",
        "body_template": (
            "Report Summary:\n"
            "• Period: {{ period | default('Last 24 hours') }}\n"
            "• Metrics: {{ metrics }}\n"
            "• Status: {{ overall_status | default('Normal') }}\n"
            "• Details: {{ details }}\n"
            "• Generated: {{ timestamp }}"
        ),
        "notify_type": "info",
        "variables": {"period": "Last 24 hours", "overall_status": "Normal"},
        "description": "Monitoring and health reports",
    },
    {
        "name": "backup-status",
        "title_template": "💾 Backup {{ status | default('Completed') }}",
        "body_template": (
            "Backup Details:\n"
            "• Database: {{ database }}\n"
            "• Size: {{ backup_size | default('Unknown') }}\n"
            "• Duration: {{ duration | default('Unknown') }}\n"
            "• Status: {{ status }}\n"
            "• Location: {{ backup_location }}\n"
            "• Time: {{ timestamp }}"
        ),
        "notify_type": "info",
        "variables": {"status": "completed", "backup_size": "Unknown", "duration": "Unknown"},
        "description": "Database backup status",
    },
)


@dataclass(frozen=True)
class RenderedNotification:
    title: str
    body: str
    notify_type: NotifyType


class TemplateRenderer:
    """Sandboxed Jinja2 renderer for template titles and bodies.

    Output is plain text, so autoescaping is off. Each render receives the
    template's default ``variables``, then the caller's variables, then the
    system variables ``timestamp`` (RFC3339), ``date`` and ``time``.
    """

    def __init__(self) -> None:
        self._env = SandboxedEnvironment(autoescape=False, trim_blocks=True, lstrip_blocks=True)
        self._env.filters["json"] = json.dumps

    @staticmethod
    def system_variables(now: datetime | None = None) -> dict[str, str]:
        now = now or datetime.now(UTC)
        return {
            "timestamp": now.isoformat(timespec="seconds"),
            "date": now.strftime("%Y-%m-%d"),
            "time": now.strftime("%H:%M:%S"),
        }

    def render_string(self, source: str, context: dict[str, Any], *, name: str = "<string>") -> str:
        """Render one template string.

        Raises:
            TemplateRenderError: Syntax error or failure while rendering.
        """
        try:
            return self._env.from_string(source).render(**context)
        except TemplateSyntaxError as exc:
            msg = f"Syntax error in template {name}: {exc}"
            raise TemplateRenderError(msg, extra={"template": name}) from exc
        except UndefinedError as exc:
            msg = f"Missing variable in template {name}: {exc}"
            raise TemplateRenderError(msg, extra={"template": name}) from exc
        except Exception as exc:
            msg = f"Failed to render template {name}: {exc}"
            raise TemplateRenderError(msg, extra={"template": name}) from exc

    def render(
        self,
        template: NotificationTemplate,
        variables: dict[str, Any] | None = None,
        *,
        now: datetime | None = None,
    ) -> RenderedNotification:
        """Render ``template`` into a title, body and severity.

        Args:
            template: Stored template.
            variables: Values overriding the template defaults.
            now: Clock used for the system variables.

        Returns:
            Rendered title, body and the template's severity.
        """
        context: dict[str, Any] = {**(template.variables or {}), **(variables or {})}
        context.update(self.system_variables(now))

        title = self.render_string(template.title_template, context, name=f"{template.name}:title")
        body = self.render_string(template.body_template, context, name=f"{template.name}:body")
        _lazy.debug(lambda: f"Rendered template {template.name} with {sorted(context)}")
        return RenderedNotification(
            title=title,
            body=body,
            notify_type=NotifyType.from_value(template.notify_type),
        )

    def validate(self, title_template: str, body_template: str) -> None:
        """Check both sources parse.

        Raises:
            TemplateRenderError: Either source has a syntax error.
        """
        for part, source in (("title", title_template), ("body", body_template)):
            try:
                self._env.parse(source)
            except TemplateSyntaxError as exc:
                msg = f"Invalid {part} template: {exc}"
                raise TemplateRenderError(msg) from exc


__all__ = ["DEFAULT_TEMPLATES", "RenderedNotification", "TemplateRenderer"]
