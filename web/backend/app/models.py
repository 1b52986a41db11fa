#web/backend/app/models.py
from typing import Dict, List, Optional, Union

from pydantic import BaseModel


class MarketSummaryModel(BaseModel):
    gauge_angle: float
    color: str
    rgb: List[int]
    dominant_state: str
    terrain_note: str
    saturation: float
    opacity: float
    fire_intensity: float


class AlertStateModel(BaseModel):
    key: str
    symbol: str
    timeframe: str
    last_signal: Optional[str] = None
    last_candle_time_ms: Optional[int] = None
    last_alert_time_ms: Optional[int] = None
    last_entry_type: Optional[str] = None
    macro_status: str = ""
    current_label: Optional[str] = None
    current_emoji: Optional[str] = None
    current_price: Optional[float] = None
    slope: Optional[float] = None


class SentMessageModel(BaseModel):
    chat_id: str
    message_id: int


class HistoryEntryModel(BaseModel):
    id: int
    created_at_ms: int
    symbol: str
    timeframe: str
    signal: str
    label: str
    emoji: str
    slope: float
    price: Optional[float] = None
    macro_text: str = ""
    sent_messages: List[SentMessageModel]
    observation: Optional[str] = None
    is_consolidated: bool = False
    consolidated_date_str: Optional[str] = None
    consolidated_dominants: Optional[str] = None


class TerrainEntryModel(BaseModel):
    symbol: str
    timestamp_ms: int


class RecipientModel(BaseModel):
    chat_id: str
    symbols: Optional[List[str]] = None  # None = every symbol


# ====== API RESPONSE MODELS ======

class StatusResponse(BaseModel):
    summary: MarketSummaryModel
    alert_states: List[AlertStateModel]
    history: List[HistoryEntryModel]
    terrain: Dict[str, List[TerrainEntryModel]]
    system_active: bool
    is_shutdown: bool
    committed_at_ms: int


class SystemSwitchResponse(BaseModel):
    success: bool
    active: bool


class ObservationResponse(BaseModel):
    success: bool
    message: str
    entry: HistoryEntryModel


class BroadcastResponse(BaseModel):
    success: bool
    count: int


class SymbolReportResponse(BaseModel):
    symbol: str
    timeframe: str
    price: float
    slope: float
    state: str
    emoji: str
    weight: int
    terrain: Optional[str] = None
    macro: str
    text: str


class MarketReportResponse(BaseModel):
    dominant_state: str
    macro: str
    votes: Dict[str, int]
    text: str


class RecipientPrefsResponse(BaseModel):
    success: bool
    chat_id: str
    symbols: List[str]


class SuccessResponse(BaseModel):
    success: bool


# ====== API REQUEST MODELS ======

class SystemSwitchRequest(BaseModel):
    password: Optional[str] = None
    active: bool


class ObservationRequest(BaseModel):
    password: Optional[str] = None
    signal_id: int
    observation: str


class BroadcastRequest(BaseModel):
    password: Optional[str] = None
    message: str = ""


class RecipientPrefsRequest(BaseModel):
    password: Optional[str] = None
    chat_id: Union[str, int]
    symbols: List[str] = []


class DeleteRecipientRequest(BaseModel):
    password: Optional[str] = None
    chat_id: Union[str, int]
