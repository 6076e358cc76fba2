"""
Dashboard page - current UV, daily maximum and 24 h forecast.
"""
from __future__ import annotations

from datetime import datetime, tzinfo
from typing import TYPE_CHECKING, List, Optional

from nicegui import Client, ui

from app.cities import city_names, find_city
from app.models import UVSnapshot, classify_uv

if TYPE_CHECKING:
    from services.uv_service import DashboardState, UVService

# Bars are scaled against this UV value (Extreme starts at 11)
BAR_SCALE_MAX = 12.0
MIN_BAR_PCT = 4
CURRENT_LOCATION = "My location"


def format_hour(ts: datetime, tz: Optional[tzinfo] = None) -> str:
    """HH:MM in the given timezone (server local time by default)."""
    return ts.astimezone(tz).strftime("%H:%M")


def bar_height_pct(value: float, scale_max: float = BAR_SCALE_MAX) -> int:
    """Bar height in percent; never zero so the bar stays clickable."""
    pct = round(value / scale_max * 100)
    return max(MIN_BAR_PCT, min(100, pct))


def forecast_rows(snapshot: UVSnapshot, tz: Optional[tzinfo] = None) -> List[dict]:
    """One display row per forecast hour."""
    rows = []
    for reading in snapshot.forecast or ():
        rows.append({
            "time": format_hour(reading.observed_at, tz),
            "value": f"{reading.value:.1f}",
            "height": bar_height_pct(reading.value),
            "color": classify_uv(reading.value).color,
        })
    return rows


def render_header() -> None:
    """Render page header."""
    with ui.header().classes("items-center justify-between"):
        ui.label("UV Index Tracker").classes("text-h6")
        ui.label("Real-time UV index for your location").classes("text-caption")


def render_state(state: "DashboardState", on_retry) -> None:
    """Render one DashboardState (success or error)."""
    if state.using_default_location:
        with ui.card().classes("w-full bg-yellow-1"):
            ui.label(
                f"Could not determine your position, showing {state.coordinate}."
            ).classes("text-yellow-9")

    if not state.ok:
        with ui.card().classes("w-full bg-red-1"):
            ui.label("Error").classes("text-h6 text-red-9")
            ui.label(state.error or "Unable to fetch UV index data.").classes("text-red-8")
            ui.button("Retry", on_click=on_retry, icon="refresh").props("color=negative")
        return

    snapshot = state.snapshot
    severity = snapshot.severity

    with ui.card().classes("w-full items-center"):
        ui.label(str(state.coordinate)).classes("text-subtitle1")
        ui.label(
            f"Updated {snapshot.current.observed_at.astimezone().strftime('%Y-%m-%d %H:%M')}"
        ).classes("text-caption text-grey-7")
        with ui.element("div").classes(
            f"bg-{severity.color} rounded-full w-32 h-32 flex items-center justify-center"
        ):
            ui.label(f"{snapshot.current.value:.1f}").classes("text-h3 text-white")
        ui.label(severity.value).classes("text-h5")
        ui.label(severity.advice).classes("text-body2 text-center")

        if snapshot.daily_max is not None:
            with ui.row().classes("w-full justify-between mt-2"):
                ui.label("Today's maximum")
                ui.label(
                    f"{snapshot.daily_max.value:.1f} at {format_hour(snapshot.daily_max.observed_at)}"
                ).classes("text-bold")

    rows = forecast_rows(snapshot)
    if rows:
        with ui.card().classes("w-full"):
            ui.label("Next 24 hours").classes("text-h6")
            with ui.row().classes("w-full items-end no-wrap gap-1").style("height: 120px"):
                for row in rows:
                    ui.element("div").classes(f"bg-{row['color']} flex-1 rounded-t").style(
                        f"height: {row['height']}%"
                    ).tooltip(f"{row['time']}: UV {row['value']}")
            with ui.row().classes("w-full justify-between text-caption"):
                ui.label(rows[0]["time"])
                ui.label(rows[len(rows) // 2]["time"])
                ui.label(rows[-1]["time"])

    ui.label(f"Source: {snapshot.source_label}").classes("text-caption text-grey-7")


async def render_dashboard(service: "UVService", client: Client) -> None:
    """Render the dashboard page and load the first state once the browser is connected."""
    render_header()

    selection: dict = {"city": None}

    with ui.column().classes("w-full max-w-md mx-auto p-4 gap-4"):
        toolbar = ui.row().classes("w-full items-center no-wrap")
        container = ui.column().classes("w-full gap-4")

    async def load(refresh_location: bool = False) -> None:
        container.clear()
        with container:
            ui.spinner(size="lg")
            ui.label("Loading UV index data...")
        state = await service.load(selection["city"], refresh_location=refresh_location)
        container.clear()
        with container:
            render_state(state, on_retry=lambda: load())

    async def on_city_change(event) -> None:
        selection["city"] = None if event.value == CURRENT_LOCATION else find_city(event.value)
        await load()

    async def use_current_location() -> None:
        if city_select.value == CURRENT_LOCATION:
            await load(refresh_location=True)
        else:
            # on_city_change reloads
            city_select.set_value(CURRENT_LOCATION)

    with toolbar:
        city_select = ui.select(
            [CURRENT_LOCATION] + city_names(),
            value=CURRENT_LOCATION,
            label="Location",
            on_change=on_city_change,
        ).classes("flex-1")
        ui.button(icon="my_location", on_click=use_current_location).props(
            "flat round"
        ).tooltip("Use my location")

    await client.connected()
    await load()
