"""Rule resolution: which recipients get an event, on which channels."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from .models import Channel, NotificationRule, RecipientType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Route:
    """One (recipient type, channel) delivery demanded by a rule."""

    recipient_type: RecipientType
    channel: Channel
    template: str
    rule_id: int | None = None

    @property
    def key(self) -> str:
        return f"{self.recipient_type.value}_{self.channel.value}"


class RuleResolver:
    """Loads active routing rules for a tenant and event type."""

    def resolve(self, tenant_id, event_type: str) -> list[NotificationRule]:
        return list(
            NotificationRule.objects.filter(
                tenant_id=tenant_id,
                event_type=event_type,
                is_active=True,
            ).order_by("-priority", "id")
        )


def build_routes(rules: Iterable[NotificationRule]) -> list[Route]:
    """Flatten rules (highest priority first) into an ordered list of routes.

    All rules apply. When two rules route the same recipient type to the same
    channel, the route of the higher-priority rule is kept so each key is sent
    at most once per attempt. Unknown recipient types and channels are skipped.
    """
    routes: dict[str, Route] = {}

    for rule in rules:
        routing_config = rule.routing_config if isinstance(rule.routing_config, dict) else {}
        for raw_recipient, config in routing_config.items():
            try:
                recipient_type = RecipientType(raw_recipient)
            except ValueError:
                logger.warning("Rule %s: unknown recipient type '%s', skipped", rule.pk, raw_recipient)
                continue

            config = config if isinstance(config, dict) else {}
            template = config.get("template") or ""
            for raw_channel in config.get("channels") or []:
                try:
                    channel = Channel(raw_channel)
                except ValueError:
                    logger.warning("Rule %s: unknown channel '%s', skipped", rule.pk, raw_channel)
                    continue

                route = Route(recipient_type, channel, template, rule.pk)
                if route.key in routes:
                    logger.debug(
                        "Rule %s: %s already routed by rule %s",
                        rule.pk,
                        route.key,
                        routes[route.key].rule_id,
                    )
                    continue
                routes[route.key] = route

    return list(routes.values())
