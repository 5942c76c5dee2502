"""Display colours for resources and labels for reservation statuses."""

from __future__ import annotations

from collections.abc import Sequence

from agenda.domain.models import OperatingHours, PaletteEntry, ReservationStatus

RESOURCE_COLORS: tuple[PaletteEntry, ...] = (
    PaletteEntry(bg="bg-primary-100", border="border-l-primary-500", dot="bg-primary-500"),
    PaletteEntry(bg="bg-success-100", border="border-l-success-500", dot="bg-success-500"),
    PaletteEntry(bg="bg-warning-100", border="border-l-warning-500", dot="bg-warning-500"),
    PaletteEntry(bg="bg-accent-100", border="border-l-accent-500", dot="bg-accent-500"),
    PaletteEntry(bg="bg-error-100", border="border-l-error-500", dot="bg-error-500"),
)

STATUS_LABELS: dict[ReservationStatus, str] = {
    ReservationStatus.PENDING: "Pendente",
    ReservationStatus.CONFIRMED: "Confirmado",
    ReservationStatus.FINALIZED: "Finalizado",
    ReservationStatus.CANCELLED: "Cancelado",
}

DEFAULT_HOUR_RANGE = (8, 22)


def color_for(index: int) -> PaletteEntry:
    """Colour of the resource at ``index`` in the sidebar; wraps around the palette."""
    if index < 0:
        return RESOURCE_COLORS[0]
    return RESOURCE_COLORS[index % len(RESOURCE_COLORS)]


def visible_hour_range(hours: Sequence[OperatingHours]) -> tuple[int, int]:
    """First and last hour the agenda must show to cover every open day."""
    open_days = [h for h in hours if h.is_open]
    if not open_days:
        return DEFAULT_HOUR_RANGE
    return (
        min(h.open_time.hour for h in open_days),
        max(h.close_time.hour for h in open_days),
    )
