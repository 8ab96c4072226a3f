# core/admin.py

from django.contrib import admin

from core.models import DocumentCounter


@admin.register(DocumentCounter)
class DocumentCounterAdmin(admin.ModelAdmin):
    list_display = ("tenant", "key", "next_number", "updated_at")
    list_filter = ("tenant",)
    search_fields = ("key",)

    # Counters are advanced by the numbering service only.
    readonly_fields = ("next_number", "created_at", "updated_at")
