"""
Business services for Trip Orders.

- rates.py: rate card lookup and pick/drop pricing
- segments.py: segment generation per trip type
- totals.py: chargeable-segment totals
- workflow.py: six-stage approval workflow and status derivation
- amendment.py: route amendments
- notification.py: department notifications
- orders.py: OrderService, the entry point used by the handlers
"""

__all__: list[str] = []
