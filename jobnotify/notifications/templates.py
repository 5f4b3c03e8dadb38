"""Message rendering with Jinja2.

Templates live in the ``message_templates`` directory of this package and are
plain text, so autoescaping is off. StrictUndefined turns a missing variable
into an error instead of an empty string.
"""

import logging
from typing import Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from jobnotify.domain.models import FilterCondition, Listing

from .models import NotificationTemplateError
from .payloads import build_listing_context, build_summary_context, describe_condition

logger = logging.getLogger(__name__)


class MessageRenderer:
    """Renders the three message kinds sent to subscribers."""

    def __init__(
        self,
        template_dir: str = "message_templates",
        listing_template: str = "listing.txt.j2",
        summary_template: str = "summary.txt.j2",
        confirmation_template: str = "confirmation.txt.j2",
    ):
        self.listing_template_name = listing_template
        self.summary_template_name = summary_template
        self.confirmation_template_name = confirmation_template

        self.env = Environment(
            loader=PackageLoader("jobnotify.notifications", template_dir),
            autoescape=False,
            undefined=StrictUndefined,
        )

    def _render(self, template_name: str, context: Dict) -> str:
        try:
            return self.env.get_template(template_name).render(context).strip()
        except TemplateError as e:
            error_msg = f"Template rendering failed for {template_name}: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

    def render_listing(self, listing: Listing) -> str:
        return self._render(self.listing_template_name, build_listing_context(listing))

    def render_summary(
        self,
        total: int,
        shown: int,
        view_url: str,
        settings_url: str,
        unsubscribe_url: str,
    ) -> str:
        context = build_summary_context(total, shown, view_url, settings_url, unsubscribe_url)
        return self._render(self.summary_template_name, context)

    def render_confirmation(self, condition: FilterCondition) -> str:
        return self._render(
            self.confirmation_template_name,
            {"criteria": describe_condition(condition)},
        )
