# core/models/counter.py

import uuid

from django.db import models


class DocumentCounter(models.Model):
    """
    Per-tenant sequence for one document key (e.g. "GRV").

    next_number is only ever advanced by core.services.numbering.next_sequence,
    which locks the row first, so two allocations can never read the same value.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="document_counters",
    )

    key = models.CharField(max_length=40)
    next_number = models.PositiveBigIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "key"],
                name="uniq_document_counter_tenant_key",
            ),
            models.CheckConstraint(
                condition=models.Q(next_number__gte=1),
                name="document_counter_next_number_gte_one",
            ),
        ]

    def __str__(self):
        return f"{self.tenant_id}:{self.key} -> {self.next_number}"
