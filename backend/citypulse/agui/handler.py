"""
POST /v1/agui: the AG-UI bridge.

Request flow:
    1. Authenticate: no bearer starts device pairing; a bearer must be a valid
       device token for an allow-listed device.
    2. Parse the RunAgentInput body and flatten it into one prompt.
    3. Stream the agent run back as AG-UI events over SSE.

Stream rules:
    RUN_STARTED is always first. Text arriving after a tool call closes the
    open message, finishes the run and opens a new run (tool events and text
    events never share a run). Text after a client tool call is dropped: the
    client executes the tool and resumes in a new request.
"""

import asyncio
import json
import uuid

from fastapi import Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from pydantic import ValidationError

from citypulse.agui.events import (
    BaseEvent,
    EventEncoder,
    RunError,
    RunFinished,
    RunStarted,
    TextMessageContent,
    TextMessageEnd,
    TextMessageStart,
)
from citypulse.agui.models import RunAgentInput
from citypulse.agui.pairing import PairingStore
from citypulse.agui.prompt import append_context, build_body_from_messages
from citypulse.agui.runtime import AgentRuntime, InboundContext
from citypulse.agui.session import SessionToolStore, default_store
from citypulse.agui.tokens import bearer_token, create_device_token, verify_device_token
from citypulse.core.logging import get_logger, log_context

log = get_logger(__name__)

DEFAULT_MAX_BODY_BYTES = 1024 * 1024
_SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


class RequestBodyError(ValueError):
    pass


def error_response(status_code: int, error_type: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"type": error_type, "message": message, **extra}},
    )


class AguiBridge:
    def __init__(
        self,
        runtime: AgentRuntime,
        *,
        pairing: PairingStore,
        gateway_secret: str,
        store: SessionToolStore | None = None,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    ) -> None:
        self.runtime = runtime
        self.pairing = pairing
        self.gateway_secret = gateway_secret
        self.store = store if store is not None else default_store
        self.max_body_bytes = max_body_bytes

    async def handle(self, request: Request) -> Response:
        if request.method != "POST":
            return PlainTextResponse("Method Not Allowed", status_code=405, headers={"Allow": "POST"})

        if not self.gateway_secret:
            return error_response(500, "server_error", "Gateway not configured")

        token = bearer_token(request.headers.get("authorization"))
        if token is None:
            return await self._start_pairing()

        device_id = verify_device_token(token, self.gateway_secret)
        if device_id is None:
            return error_response(401, "unauthorized", "Authentication required")

        if not await run_in_threadpool(self.pairing.is_approved, device_id):
            return error_response(
                403,
                "pairing_pending",
                "Device pending approval. Ask the owner to approve using the pairing code "
                "from your initial pairing response.",
            )

        try:
            run_input = await self._read_body(request)
        except RequestBodyError as exc:
            return error_response(400, "invalid_request_error", str(exc))

        if not run_input.has_prompt_role():
            return error_response(
                400,
                "invalid_request_error",
                "At least one user or tool message is required in `messages`.",
            )

        prompt = build_body_from_messages(run_input.messages)
        if not prompt.body.strip():
            return error_response(400, "invalid_request_error", "Could not extract a prompt from `messages`.")

        thread_id = run_input.thread_id or f"agui-{uuid.uuid4()}"
        run_id = run_input.run_id or f"agui-run-{uuid.uuid4()}"
        ctx = InboundContext(
            session_key=f"agui:{thread_id}",
            thread_id=thread_id,
            run_id=run_id,
            device_id=device_id,
            body=append_context(prompt.body, run_input.context),
            system_prompt=prompt.system_prompt,
        )
        log.info("agui_dispatch", session_key=ctx.session_key, device_id=device_id, body=ctx.body[:120])

        encoder = EventEncoder(request.headers.get("accept"))
        stream = RunStream(self.runtime, self.store, ctx, run_input, encoder)
        return StreamingResponse(
            stream.events(),
            media_type=encoder.get_content_type(),
            headers=_SSE_HEADERS,
        )

    async def _start_pairing(self) -> JSONResponse:
        device_id = str(uuid.uuid4())
        code = await run_in_threadpool(self.pairing.upsert_pairing_request, device_id)
        if code is None:
            return error_response(
                429,
                "rate_limit",
                "Too many pending pairing requests. Please wait for existing requests to expire "
                f"({self.pairing.ttl_seconds // 60} minutes) or ask the owner to approve/reject them.",
            )
        return error_response(
            403,
            "pairing_pending",
            "Device pending approval",
            pairing={
                "pairingCode": code,
                "token": create_device_token(self.gateway_secret, device_id),
                "instructions": (
                    "Save this token for use as a Bearer token and ask the owner to approve: "
                    f"citypulse pairing approve {code}"
                ),
            },
        )

    async def _read_body(self, request: Request) -> RunAgentInput:
        chunks: list[bytes] = []
        size = 0
        async for chunk in request.stream():
            size += len(chunk)
            if size > self.max_body_bytes:
                raise RequestBodyError(f"Request body exceeds {self.max_body_bytes} bytes")
            chunks.append(chunk)
        raw = b"".join(chunks)
        try:
            data = json.loads(raw or b"{}")
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise RequestBodyError(f"Invalid JSON body: {exc}") from exc
        if not isinstance(data, dict):
            raise RequestBodyError("Request body must be a JSON object")
        try:
            return RunAgentInput.model_validate(data)
        except ValidationError as exc:
            raise RequestBodyError(f"Invalid RunAgentInput: {exc.error_count()} validation error(s)") from exc


class RunStream:
    """
    One streamed agent run. Writes encoded events onto a queue that the
    response body drains; also serves as the runtime's reply dispatcher.
    """

    def __init__(
        self,
        runtime: AgentRuntime,
        store: SessionToolStore,
        ctx: InboundContext,
        run_input: RunAgentInput,
        encoder: EventEncoder,
    ) -> None:
        self.runtime = runtime
        self.store = store
        self.ctx = ctx
        self.run_input = run_input
        self.encoder = encoder
        self.cancel_event = asyncio.Event()
        self.closed = False
        self.run_id = ctx.run_id
        self.message_id = f"msg-{uuid.uuid4()}"
        self.message_started = False
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._task: asyncio.Task | None = None

    @property
    def session_key(self) -> str:
        return self.ctx.session_key

    # ── writing ───────────────────────────────────────────────────────────────

    def write_event(self, event: BaseEvent) -> None:
        if self.closed:
            return
        self._queue.put_nowait(self.encoder.encode(event))

    def _start_message(self) -> None:
        if not self.message_started:
            self.message_started = True
            self.write_event(TextMessageStart(message_id=self.message_id, run_id=self.run_id))

    def _end_message(self) -> None:
        if self.message_started:
            self.write_event(TextMessageEnd(message_id=self.message_id, run_id=self.run_id))
            self.message_started = False

    def _finish(self) -> None:
        self._end_message()
        self.write_event(RunFinished(thread_id=self.ctx.thread_id, run_id=self.run_id))
        self.closed = True

    def _split_run_if_tool_fired(self) -> None:
        if not self.store.was_tool_fired(self.session_key):
            return
        self._end_message()
        self.write_event(RunFinished(thread_id=self.ctx.thread_id, run_id=self.run_id))
        self.run_id = f"agui-run-{uuid.uuid4()}"
        self.message_id = f"msg-{uuid.uuid4()}"
        self.store.set_message_id(self.session_key, self.message_id)
        self.store.clear_tool_fired(self.session_key)
        self.write_event(RunStarted(thread_id=self.ctx.thread_id, run_id=self.run_id))

    def _write_text(self, text: str) -> None:
        self._split_run_if_tool_fired()
        self._start_message()
        self.write_event(
            TextMessageContent(message_id=self.message_id, run_id=self.run_id, delta=text + "\n\n")
        )

    # ── ReplyDispatcher ───────────────────────────────────────────────────────

    def send_tool_result(self, text: str) -> bool:
        return not self.closed

    def send_block_reply(self, text: str) -> bool:
        if self.closed:
            return False
        text = (text or "").strip()
        if not text or self.store.was_client_tool_called(self.session_key):
            return False
        self._write_text(text)
        return True

    def send_final_reply(self, text: str) -> bool:
        if self.closed:
            return False
        text = (text or "").strip()
        if text and not self.store.was_client_tool_called(self.session_key):
            self._write_text(text)
        self._finish()
        return True

    # ── lifecycle ─────────────────────────────────────────────────────────────

    def _prepare_session(self) -> None:
        tools = self.run_input.tools
        if tools:
            self.store.stash_tools(self.session_key, tools)
            self.store.mark_client_tool_names(self.session_key, [t.name for t in tools])
        self.store.set_writer(self.session_key, self.write_event, self.message_id)

    async def _dispatch(self) -> None:
        with log_context(session_key=self.session_key, device_id=self.ctx.device_id):
            await self._dispatch_run()

    async def _dispatch_run(self) -> None:
        try:
            await self.runtime.dispatch(self.ctx, self, self.cancel_event)
            if not self.closed:
                self._finish()
        except asyncio.CancelledError:
            self.closed = True
            raise
        except Exception as exc:
            log.error("agui_dispatch_failed", error=str(exc))
            if not self.closed:
                self.write_event(RunError(message=str(exc)))
                self.closed = True
        finally:
            self.store.clear_session(self.session_key)
            self._queue.put_nowait(None)

    async def events(self):
        self.write_event(RunStarted(thread_id=self.ctx.thread_id, run_id=self.run_id))
        self._prepare_session()
        self._task = asyncio.create_task(self._dispatch())
        try:
            while True:
                chunk = await self._queue.get()
                if chunk is None:
                    break
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        """Client went away (or the stream ended): stop the agent run."""
        task = self._task
        if task is None or task.done():
            return
        log.info("agui_client_disconnected", session_key=self.session_key)
        self.closed = True
        self.cancel_event.set()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
