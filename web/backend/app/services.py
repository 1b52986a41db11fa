#web/backend/app/services.py
from admin import MarketReport, SymbolReport
from engine.state_store import StoreSnapshot
from models import HistoryEntry, InstrumentAlertState, MarketSummary

from .models import (
    AlertStateModel,
    HistoryEntryModel,
    MarketReportResponse,
    MarketSummaryModel,
    SentMessageModel,
    StatusResponse,
    SymbolReportResponse,
    TerrainEntryModel,
)


def summary_model(summary: MarketSummary) -> MarketSummaryModel:
    return MarketSummaryModel(
        gauge_angle=summary.gauge_angle,
        color=summary.color_css,
        rgb=list(summary.color),
        dominant_state=summary.dominant_state_label,
        terrain_note=summary.terrain_note,
        saturation=summary.saturation,
        opacity=summary.opacity,
        fire_intensity=summary.fire_intensity,
    )


def alert_state_model(state: InstrumentAlertState) -> AlertStateModel:
    return AlertStateModel(
        key=state.key,
        symbol=state.symbol,
        timeframe=state.timeframe,
        last_signal=state.last_signal.value if state.last_signal else None,
        last_candle_time_ms=state.last_candle_time_ms,
        last_alert_time_ms=state.last_alert_time_ms,
        last_entry_type=state.last_entry_type.value if state.last_entry_type else None,
        macro_status=state.macro_status,
        current_label=state.current_label,
        current_emoji=state.current_emoji,
        current_price=state.current_price,
        slope=state.slope,
    )


def history_entry_model(entry: HistoryEntry) -> HistoryEntryModel:
    return HistoryEntryModel(
        id=entry.id,
        created_at_ms=entry.created_at_ms,
        symbol=entry.symbol,
        timeframe=entry.timeframe,
        signal=entry.signal.value,
        label=entry.label,
        emoji=entry.emoji,
        slope=entry.slope,
        price=entry.price,
        macro_text=entry.macro_text,
        sent_messages=[
            SentMessageModel(chat_id=m.chat_id, message_id=m.message_id)
            for m in entry.sent_messages
        ],
        observation=entry.observation,
        is_consolidated=entry.is_consolidated,
        consolidated_date_str=entry.consolidated_date_str,
        consolidated_dominants=entry.consolidated_dominants,
    )


def build_status(snapshot: StoreSnapshot) -> StatusResponse:
    return StatusResponse(
        summary=summary_model(snapshot.summary),
        alert_states=[alert_state_model(s) for s in snapshot.alert_states.values()],
        history=[history_entry_model(h) for h in snapshot.history],
        terrain={
            direction.value: [
                TerrainEntryModel(symbol=e.symbol, timestamp_ms=e.timestamp_ms) for e in entries
            ]
            for direction, entries in snapshot.terrain.items()
        },
        system_active=snapshot.system_active,
        is_shutdown=snapshot.is_shutdown,
        committed_at_ms=snapshot.committed_at_ms,
    )


def symbol_report_model(report: SymbolReport) -> SymbolReportResponse:
    c = report.classification
    return SymbolReportResponse(
        symbol=report.symbol,
        timeframe=report.timeframe,
        price=report.price,
        slope=report.slope,
        state=c.label,
        emoji=c.emoji,
        weight=c.weight,
        terrain=c.terrain.value if c.terrain else None,
        macro=report.macro.value,
        text=report.text,
    )


def market_report_model(report: MarketReport) -> MarketReportResponse:
    return MarketReportResponse(
        dominant_state=report.dominant_state,
        macro=report.macro.value,
        votes={trend.value: n for trend, n in report.votes.items()},
        text=report.text,
    )
