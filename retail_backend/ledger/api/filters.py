# ledger/api/filters.py

"""
LEDGER ENTRY FILTERS (django-filter)

    /api/ledger/entries/?start_date=2024-01-01&end_date=2024-01-31
    /api/ledger/entries/?channel=cash&source=sale
    /api/ledger/entries/?source_document_id=SALE-1001
    /api/ledger/entries/?exclude_refunds=true

Dates are local days (settings.TIME_ZONE).
"""

from __future__ import annotations

import django_filters

from ledger.models import Channel, LedgerEntry
from ledger.services.queries import REFUND_SOURCES
from ledger.services.utils import day_bounds


class LedgerEntryFilter(django_filters.FilterSet):
    start_date = django_filters.DateFilter(method="filter_start_date")
    end_date = django_filters.DateFilter(method="filter_end_date")
    channel = django_filters.CharFilter(method="filter_channel")
    source = django_filters.MultipleChoiceFilter(choices=LedgerEntry.Source.choices)
    direction = django_filters.ChoiceFilter(choices=LedgerEntry.DIRECTIONS)
    source_document_id = django_filters.CharFilter(field_name="source_document_id")
    exclude_refunds = django_filters.BooleanFilter(method="filter_exclude_refunds")

    class Meta:
        model = LedgerEntry
        fields = [
            "start_date",
            "end_date",
            "channel",
            "source",
            "direction",
            "source_document_id",
            "exclude_refunds",
        ]

    def filter_start_date(self, queryset, name, value):
        return queryset.filter(occurred_at__gte=day_bounds(value)[0])

    def filter_end_date(self, queryset, name, value):
        return queryset.filter(occurred_at__lt=day_bounds(value)[1])

    def filter_exclude_refunds(self, queryset, name, value):
        if value:
            return queryset.exclude(source__in=REFUND_SOURCES)
        return queryset

    def filter_channel(self, queryset, name, value):
        value = (value or "").strip().lower()
        if value == Channel.CASH:
            return queryset.filter(channel__kind=Channel.CASH)
        try:
            return queryset.filter(channel_id=int(value))
        except (TypeError, ValueError):
            return queryset.none()
