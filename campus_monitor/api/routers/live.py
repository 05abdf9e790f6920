"""WebSocket sessions hosting a mounted view each.

Connecting mounts the view (one store subscription), every snapshot pushes a
fresh ``{"type": "view"}`` render, and client messages ``{"action": ...}``
drive the view's actions. Disconnecting unmounts the view, which also drops
any faculty verification held by the session.
"""
import asyncio
import json
import logging
from typing import Any, Callable, Dict, List

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from campus_monitor.core.monitoring import LIVE_SESSIONS
from campus_monitor.services import rooms as room_svc
from campus_monitor.services.store import RealtimeStore, get_store
from campus_monitor.services.views import RoomDetailView, RoomListView

router = APIRouter(tags=["live"])
logger = logging.getLogger(__name__)

RENDER = object()

Message = Dict[str, Any]
Handler = Callable[[Message], List[Message]]


def alert(message: str) -> Message:
    return {"type": "alert", "message": message}


def _confirmation(data: Message):
    prompts: List[str] = []

    def confirm(prompt: str) -> bool:
        prompts.append(prompt)
        return bool(data.get("confirmed"))

    return confirm, prompts


def dispatch(handlers: Dict[str, Handler], data: Any) -> List[Message]:
    action = data.get("action") if isinstance(data, dict) else None
    handler = handlers.get(action)
    if handler is None:
        return [{"type": "error", "message": f"Unknown action: {action}"}]
    try:
        return handler(data)
    except (ValueError, LookupError, PermissionError) as e:
        return [alert(str(e))]


def list_handlers(view: RoomListView) -> Dict[str, Handler]:
    def add_room(data):
        view.add_room(data.get("roomId"))
        return []

    def delete_room(data):
        confirm, prompts = _confirmation(data)
        if view.delete_room(str(data.get("roomId", "")), confirm):
            return []
        return [{"type": "confirm", "message": prompts[0]}]

    def toggle_add_form(data):
        view.toggle_add_form()
        return []

    def update_form(data):
        view.new_room_id = str(data.get("roomId") or "")
        return []

    return {
        "add_room": add_room,
        "delete_room": delete_room,
        "toggle_add_form": toggle_add_form,
        "update_form": update_form,
    }


def detail_handlers(view: RoomDetailView) -> Dict[str, Handler]:
    def enter(data):
        view.enter()
        return []

    def exit_(data):
        view.exit()
        return []

    def verify(data):
        if view.verify(str(data.get("code", ""))):
            return []
        return [alert(room_svc.INVALID_ACCESS_CODE)]

    def logout(data):
        view.logout()
        return []

    def toggle_panel(data):
        view.toggle_panel()
        return []

    def update_form(data):
        view.update_form(**{k: v for k, v in data.items() if k != "action"})
        return []

    def schedule(data):
        update_form(data)
        return [alert(view.schedule())]

    def clear_schedule(data):
        return [alert(view.clear_schedule())]

    def delete_room(data):
        confirm, prompts = _confirmation(data)
        if view.delete_room(confirm):
            return [{"type": "navigate", "to": "/"}]
        return [{"type": "confirm", "message": prompts[0]}]

    return {
        "enter": enter,
        "exit": exit_,
        "verify": verify,
        "logout": logout,
        "toggle_panel": toggle_panel,
        "update_form": update_form,
        "schedule": schedule,
        "clear_schedule": clear_schedule,
        "delete_room": delete_room,
    }


class LiveSession:
    def __init__(self, websocket: WebSocket, kind: str):
        self.websocket = websocket
        self.kind = kind
        self.loop = asyncio.get_running_loop()
        self.outbox: asyncio.Queue = asyncio.Queue()

    def view_changed(self, view) -> None:
        # Runs on whichever thread committed the store write
        self.loop.call_soon_threadsafe(self.outbox.put_nowait, RENDER)

    async def _sender(self, view) -> None:
        while True:
            message = await self.outbox.get()
            if message is RENDER:
                message = {"type": "view", "view": view.render().model_dump(mode="json", by_alias=True)}
            await self.websocket.send_json(message)

    async def run(self, view, handlers: Dict[str, Handler]) -> None:
        await self.websocket.accept()
        try:
            await run_in_threadpool(view.mount)
        except ValueError as e:
            await self.websocket.send_json({"type": "error", "message": str(e)})
            await self.websocket.close(code=4400)
            return

        LIVE_SESSIONS.labels(view=self.kind).inc()
        logger.info("Live %s session opened", self.kind)
        sender = asyncio.create_task(self._sender(view))
        try:
            while True:
                text = await self.websocket.receive_text()
                try:
                    data = json.loads(text)
                except json.JSONDecodeError:
                    self.outbox.put_nowait({"type": "error", "message": "Messages must be JSON objects"})
                    continue
                for message in await run_in_threadpool(dispatch, handlers, data):
                    self.outbox.put_nowait(message)
                self.outbox.put_nowait(RENDER)
        except WebSocketDisconnect:
            logger.info("Live %s session closed", self.kind)
        finally:
            view.unmount()
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)
            LIVE_SESSIONS.labels(view=self.kind).dec()


@router.websocket("/ws/rooms")
async def rooms_live(websocket: WebSocket, store: RealtimeStore = Depends(get_store)):
    session = LiveSession(websocket, "list")
    view = RoomListView(store, on_change=session.view_changed)
    await session.run(view, list_handlers(view))


@router.websocket("/ws/room/{room_id}")
async def room_live(websocket: WebSocket, room_id: str, store: RealtimeStore = Depends(get_store)):
    session = LiveSession(websocket, "detail")
    view = RoomDetailView(store, room_id, on_change=session.view_changed)
    await session.run(view, detail_handlers(view))
