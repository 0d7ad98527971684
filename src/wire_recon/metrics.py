"""Reconciliation observability metrics.

Metric Categories:
- Payment metrics: counts by status, reverted payments, unprocessed amount
- Audit metrics: actions by tag
- Backend metrics: ledger posting and reversal failures

Usage:
    collector = MetricsCollector(session)
    metrics = await collector.collect_all()

    # For Prometheus export
    print(metrics.to_prometheus())

    # For JSON export
    print(metrics.to_json())
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wire_recon.models import AuditAction, AuditLog, PaymentStatus, WirePayment


@dataclass
class Counter:
    """A counter metric (monotonically increasing)."""

    name: str
    value: int
    labels: dict[str, str] = field(default_factory=dict)
    help_text: str = ""


@dataclass
class Gauge:
    """A gauge metric (can go up or down)."""

    name: str
    value: float | int | Decimal
    labels: dict[str, str] = field(default_factory=dict)
    help_text: str = ""


@dataclass
class ReconciliationMetrics:
    """Collection of all reconciliation metrics."""

    payments_by_status: list[Gauge]
    audit_actions: list[Counter]
    backend_post_failures: Counter
    backend_reversal_failures: Counter
    reverted_payments: Gauge
    unprocessed_amount: Gauge

    collected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def _metrics(self) -> list[Counter | Gauge]:
        return [
            *self.payments_by_status,
            *self.audit_actions,
            self.backend_post_failures,
            self.backend_reversal_failures,
            self.reverted_payments,
            self.unprocessed_amount,
        ]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "collected_at": self.collected_at.isoformat(),
            "payments_by_status": [self._metric_to_dict(m) for m in self.payments_by_status],
            "audit_actions": [self._metric_to_dict(m) for m in self.audit_actions],
            "backend_post_failures": self._metric_to_dict(self.backend_post_failures),
            "backend_reversal_failures": self._metric_to_dict(self.backend_reversal_failures),
            "reverted_payments": self._metric_to_dict(self.reverted_payments),
            "unprocessed_amount": self._metric_to_dict(self.unprocessed_amount),
        }

    def _metric_to_dict(self, metric: Counter | Gauge) -> dict[str, Any]:
        """Convert single metric to dict."""
        return {
            "name": metric.name,
            "value": float(metric.value) if isinstance(metric.value, Decimal) else metric.value,
            "labels": metric.labels,
            "help": metric.help_text,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def to_prometheus(self) -> str:
        """Convert to Prometheus text format."""
        lines: list[str] = []
        described: set[str] = set()

        for metric in self._metrics():
            labels = ""
            if metric.labels:
                label_parts = [f'{k}="{v}"' for k, v in metric.labels.items()]
                labels = "{" + ",".join(label_parts) + "}"

            value = float(metric.value) if isinstance(metric.value, Decimal) else metric.value

            # HELP/TYPE once per metric family
            if metric.name not in described:
                described.add(metric.name)
                if metric.help_text:
                    lines.append(f"# HELP {metric.name} {metric.help_text}")
                metric_type = "counter" if isinstance(metric, Counter) else "gauge"
                lines.append(f"# TYPE {metric.name} {metric_type}")
            lines.append(f"{metric.name}{labels} {value}")

        return "\n".join(lines) + "\n"


class MetricsCollector:
    """Collects metrics from database."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def collect_all(self) -> ReconciliationMetrics:
        """Collect all metrics."""
        action_counts = await self._count_audit_actions()
        return ReconciliationMetrics(
            payments_by_status=await self._gauge_payments_by_status(),
            audit_actions=[
                Counter(
                    name="wire_recon_audit_actions_total",
                    value=count,
                    labels={"action": action},
                    help_text="Audit log entries by action",
                )
                for action, count in sorted(action_counts.items())
            ],
            backend_post_failures=Counter(
                name="wire_recon_backend_post_failures_total",
                value=action_counts.get(AuditAction.BACKEND_POST_FAILED.value, 0),
                help_text="Manual postings aborted by a ledger failure",
            ),
            backend_reversal_failures=Counter(
                name="wire_recon_backend_reversal_failures_total",
                value=action_counts.get(AuditAction.BACKEND_REVERSAL_FAILED.value, 0),
                help_text="Reversals aborted by a ledger failure",
            ),
            reverted_payments=await self._gauge_reverted_payments(),
            unprocessed_amount=await self._gauge_unprocessed_amount(),
        )

    async def _gauge_payments_by_status(self) -> list[Gauge]:
        """Count payments per status, reporting zero for empty statuses."""
        result = await self._session.execute(
            select(WirePayment.status, func.count()).group_by(WirePayment.status)
        )
        counts = {status: count for status, count in result.all()}
        return [
            Gauge(
                name="wire_recon_payments",
                value=counts.get(status.value, 0),
                labels={"status": status.value},
                help_text="Wire payments by status",
            )
            for status in PaymentStatus
        ]

    async def _count_audit_actions(self) -> dict[str, int]:
        result = await self._session.execute(
            select(AuditLog.action, func.count()).group_by(AuditLog.action)
        )
        return {action: count for action, count in result.all()}

    async def _gauge_reverted_payments(self) -> Gauge:
        value = await self._session.scalar(
            select(func.count()).select_from(WirePayment).where(WirePayment.is_reverted.is_(True))
        )
        return Gauge(
            name="wire_recon_reverted_payments",
            value=value or 0,
            help_text="Payments in the terminal REVERTED state",
        )

    async def _gauge_unprocessed_amount(self) -> Gauge:
        """Sum of actual amounts still awaiting a decision."""
        value = await self._session.scalar(
            select(func.coalesce(func.sum(WirePayment.actual_amount), 0)).where(
                WirePayment.status.in_(
                    [
                        PaymentStatus.PENDING.value,
                        PaymentStatus.UNCLEARED.value,
                        PaymentStatus.REVIEW_REQUIRED.value,
                    ]
                )
            )
        )
        return Gauge(
            name="wire_recon_unprocessed_amount",
            value=Decimal(str(value or 0)),
            help_text="Total actual amount of payments awaiting clearing or posting",
        )
