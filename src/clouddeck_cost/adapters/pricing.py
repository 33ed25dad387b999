"""Pricing rules used to value optimization recommendations.

Rates come from Settings so operators can match their provider contract
without code changes. Ledger amounts are already priced; the catalog is only
used to estimate what a recommendation would save.
"""

from dataclasses import dataclass

from clouddeck_cost.settings import Settings


@dataclass(frozen=True)
class PricingRule:
    """Unit price of one billable service.

    Attributes:
        service: Ledger service name.
        base: USD per unit.
        per: Billing unit (hour, gb-month, gb, minute, invocation).
    """

    service: str
    base: float
    per: str


class PricingCatalog:
    """Lookup of per-service unit prices.

    Args:
        rules: Pricing rules keyed by service name.
        hours_per_month: Hours used to turn an hourly compute rate into a monthly cost.
    """

    def __init__(self, rules: dict[str, PricingRule], hours_per_month: float = 730.0) -> None:
        self._rules = dict(rules)
        self._hours_per_month = hours_per_month

    @classmethod
    def from_settings(cls, settings: Settings) -> "PricingCatalog":
        """Build the catalog from the pricing_* settings."""
        rules = [
            PricingRule("compute", settings.pricing_compute_per_hour, "hour"),
            PricingRule("storage", settings.pricing_storage_per_gb_month, "gb-month"),
            PricingRule("bandwidth", settings.pricing_bandwidth_per_gb, "gb"),
            PricingRule("builds", settings.pricing_build_per_minute, "minute"),
            PricingRule("functions", settings.pricing_functions_per_invocation, "invocation"),
        ]
        return cls({rule.service: rule for rule in rules}, hours_per_month=settings.hours_per_month)

    def rule(self, service: str) -> PricingRule:
        """Return the pricing rule for a service.

        Raises:
            KeyError: If no rule is configured for the service.
        """
        return self._rules[service]

    def rate(self, service: str) -> float:
        return self.rule(service).base

    def monthly_compute_cost(self, instance_units: float = 1.0) -> float:
        """Monthly cost of keeping an instance of the given size running."""
        return self.rate("compute") * self._hours_per_month * instance_units

    def monthly_storage_cost(self, size_gb: float) -> float:
        return self.rate("storage") * size_gb

    def build_minutes_cost(self, minutes: float) -> float:
        return self.rate("builds") * minutes
