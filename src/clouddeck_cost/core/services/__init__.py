"""Business logic services for the CloudDeck cost analytics service."""
from clouddeck_cost.core.services.cost_aggregator import CostAggregator
from clouddeck_cost.core.services.cost_report_service import CostReportService

__all__ = [
    "CostAggregator",
    "CostReportService",
]
