#web/backend/app/main.py
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from admin import (
    AdminAuthError,
    AdminService,
    ReportUnavailableError,
    UnknownRecipientError,
    UnknownSignalError,
    UnknownSymbolError,
)
from engine.state_store import StateStore

from .models import (
    BroadcastRequest,
    BroadcastResponse,
    DeleteRecipientRequest,
    HistoryEntryModel,
    MarketReportResponse,
    ObservationRequest,
    ObservationResponse,
    RecipientModel,
    RecipientPrefsRequest,
    RecipientPrefsResponse,
    StatusResponse,
    SuccessResponse,
    SymbolReportResponse,
    SystemSwitchRequest,
    SystemSwitchResponse,
)
from .services import (
    build_status,
    history_entry_model,
    market_report_model,
    symbol_report_model,
)


def create_app(store: StateStore, admin: AdminService) -> FastAPI:
    """
    Read-only status API over the last committed tick, plus admin actions.
    """
    app = FastAPI(
        title="Momentum Terrain Bot API",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/status", response_model=StatusResponse)
    def api_status():
        return build_status(store.snapshot())

    @app.get("/history", response_model=List[HistoryEntryModel])
    def api_history():
        return [history_entry_model(h) for h in store.snapshot().history]

    @app.get("/report/market", response_model=MarketReportResponse)
    def api_market_report():
        return market_report_model(admin.report_market())

    @app.get("/report/{symbol}", response_model=SymbolReportResponse)
    def api_symbol_report(symbol: str):
        try:
            return symbol_report_model(admin.report_symbol(symbol))
        except UnknownSymbolError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except ReportUnavailableError as e:
            raise HTTPException(status_code=503, detail=str(e))

    @app.post("/admin/system-switch", response_model=SystemSwitchResponse)
    def api_system_switch(req: SystemSwitchRequest):
        try:
            active = admin.set_system_active(req.password, req.active)
        except AdminAuthError:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return SystemSwitchResponse(success=True, active=active)

    @app.post("/admin/update-signal", response_model=ObservationResponse)
    def api_update_signal(req: ObservationRequest):
        try:
            entry = admin.add_observation(req.password, req.signal_id, req.observation)
        except AdminAuthError:
            raise HTTPException(status_code=401, detail="Unauthorized")
        except UnknownSignalError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return ObservationResponse(
            success=True,
            message="Observation saved and messages edited.",
            entry=history_entry_model(entry),
        )

    @app.post("/admin/broadcast-message", response_model=BroadcastResponse)
    def api_broadcast(req: BroadcastRequest):
        try:
            count = admin.broadcast_message(req.password, req.message)
        except AdminAuthError:
            raise HTTPException(status_code=401, detail="Unauthorized")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return BroadcastResponse(success=True, count=count)

    @app.get("/admin/users", response_model=List[RecipientModel])
    def api_users(password: Optional[str] = Query(default=None)):
        try:
            recipients = admin.list_recipients(password)
        except AdminAuthError:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return [RecipientModel(chat_id=chat_id, symbols=symbols) for chat_id, symbols in recipients.items()]

    @app.post("/admin/update-user-prefs", response_model=RecipientPrefsResponse)
    def api_update_user_prefs(req: RecipientPrefsRequest):
        chat_id = str(req.chat_id)
        try:
            symbols = admin.update_preferences(req.password, chat_id, req.symbols)
        except AdminAuthError:
            raise HTTPException(status_code=401, detail="Unauthorized")
        except UnknownRecipientError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except UnknownSymbolError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return RecipientPrefsResponse(success=True, chat_id=chat_id, symbols=symbols)

    @app.post("/admin/delete-user", response_model=SuccessResponse)
    def api_delete_user(req: DeleteRecipientRequest):
        try:
            admin.delete_recipient(req.password, str(req.chat_id))
        except AdminAuthError:
            raise HTTPException(status_code=401, detail="Unauthorized")
        except UnknownRecipientError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return SuccessResponse(success=True)

    return app
