"""Transports that carry a hook request to an external policy and back."""

import asyncio
import json
import logging
import os
import signal
from typing import Awaitable, Callable, Optional, Protocol, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from trustgate.errors import HookTransportError

from .models import HookRequest, HookResponse

logger = logging.getLogger(__name__)

# Exit code a command hook uses to block with its stderr as the reason
BLOCKING_EXIT_CODE = 2

# Seconds to wait for a killed hook to be reaped
KILL_WAIT_TIMEOUT = 2.0


class HookTransport(Protocol):
    async def send(self, request: HookRequest) -> HookResponse: ...


def parse_response(event_name: str, raw: Union[str, bytes, dict]) -> HookResponse:
    """Decode a hook's raw output. Empty output means "continue"."""
    if isinstance(raw, (str, bytes)):
        text = raw.decode(errors="replace") if isinstance(raw, bytes) else raw
        if not text.strip():
            return HookResponse()
        try:
            raw = json.loads(text)
        except ValueError as e:
            raise HookTransportError(event_name, f"invalid JSON response: {e}") from e

    if not isinstance(raw, dict):
        raise HookTransportError(event_name, "response must be a JSON object")

    try:
        return HookResponse.model_validate(raw)
    except PydanticValidationError as e:
        raise HookTransportError(event_name, f"malformed response: {e.errors()[0]['msg']}") from e


class CommandHookTransport:
    """Runs a shell command per request.

    The request is written to stdin as JSON and the verdict read from stdout.
    Exit code 2 blocks with stderr as the reason; any other non-zero exit is a
    transport failure.
    """

    def __init__(self, command: str, cwd: Optional[str] = None, env: Optional[dict[str, str]] = None):
        self.command = command
        self.cwd = cwd
        self.env = env

    async def send(self, request: HookRequest) -> HookResponse:
        env = None
        if self.env:
            env = {**os.environ, **self.env}

        try:
            proc = await asyncio.create_subprocess_shell(
                self.command,
                cwd=self.cwd,
                env=env,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            raise HookTransportError(request.event, f"could not start '{self.command}': {e}") from e

        try:
            stdout, stderr = await proc.communicate(json.dumps(request.to_wire()).encode())
        except asyncio.CancelledError:
            # Deadline or turn interrupt: don't leave the hook process behind
            await self._kill(proc)
            raise

        if proc.returncode == BLOCKING_EXIT_CODE:
            reason = stderr.decode(errors="replace").strip() or None
            return HookResponse(decision="block", reason=reason)

        if proc.returncode != 0:
            detail = stderr.decode(errors="replace").strip()[:200]
            raise HookTransportError(
                request.event,
                f"command exited with code {proc.returncode}" + (f": {detail}" if detail else ""),
            )

        return parse_response(request.event, stdout)

    async def _kill(self, proc: asyncio.subprocess.Process):
        """Kill the shell and everything it started, then reap it briefly."""
        if proc.returncode is not None:
            return
        try:
            # The hook runs in its own session, so its pid is the group id
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.warning(f"Could not kill hook process group {proc.pid}: {e}")
            proc.kill()
        try:
            await asyncio.wait_for(proc.wait(), timeout=KILL_WAIT_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"Hook process {proc.pid} did not exit after kill")


class HttpHookTransport:
    """POSTs the request as JSON and reads the verdict from the JSON body."""

    def __init__(
        self,
        url: str,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.headers = headers or {}
        self._transport = transport

    async def send(self, request: HookRequest) -> HookResponse:
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=None) as client:
                response = await client.post(self.url, json=request.to_wire(), headers=self.headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise HookTransportError(request.event, f"HTTP {e.response.status_code} from {self.url}") from e
        except httpx.HTTPError as e:
            raise HookTransportError(request.event, f"request to {self.url} failed: {e}") from e

        return parse_response(request.event, response.text)


HookCallable = Callable[[HookRequest], Awaitable[Union[HookResponse, dict, str, None]]]


class CallableHookTransport:
    """In-process hook backed by an async function."""

    def __init__(self, func: HookCallable):
        self.func = func

    async def send(self, request: HookRequest) -> HookResponse:
        result = await self.func(request)
        if result is None:
            return HookResponse()
        if isinstance(result, HookResponse):
            return result
        return parse_response(request.event, result)
