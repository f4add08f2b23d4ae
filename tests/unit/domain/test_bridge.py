"""Tests for src/domain/services/bridge.py."""

import asyncio
import threading

import pytest

from src.domain.exceptions import OperationCancelled, StoreError
from src.domain.services.bridge import CancellationToken, SyncAsyncBridge, default_bridge


@pytest.fixture
def bridge():
    b = SyncAsyncBridge(max_workers=2)
    yield b
    b.close()


# --- run_sync ---

def test_run_sync_returns_coroutine_result(bridge):
    async def _add(a, b):
        await asyncio.sleep(0)
        return a + b

    assert bridge.run_sync(_add, 2, 3) == 5


def test_run_sync_runs_on_bridge_loop_thread(bridge):
    async def _thread_name():
        return threading.current_thread().name

    assert bridge.run_sync(_thread_name) == "repository-bridge-loop"


def test_run_sync_reraises_the_same_exception_object(bridge):
    error = StoreError("backend down")

    async def _fail():
        raise error

    with pytest.raises(StoreError) as exc_info:
        bridge.run_sync(_fail)
    assert exc_info.value is error


async def test_run_sync_from_inside_an_event_loop_does_not_deadlock(bridge):
    async def _value():
        await asyncio.sleep(0.01)
        return "done"

    # the caller's loop is blocked, but the work runs on the bridge loop
    assert bridge.run_sync(_value) == "done"


def test_run_sync_from_bridge_loop_thread_is_rejected(bridge):
    async def _reenter():
        return bridge.run_sync(asyncio.sleep, 0)

    with pytest.raises(RuntimeError, match="deadlock"):
        bridge.run_sync(_reenter)


def test_run_sync_after_close_is_rejected():
    b = SyncAsyncBridge()
    b.close()
    with pytest.raises(RuntimeError):
        b.run_sync(asyncio.sleep, 0)


# --- run_async ---

async def test_run_async_offloads_to_worker_thread(bridge):
    caller = threading.current_thread()
    worker = await bridge.run_async(threading.current_thread)
    assert worker is not caller
    assert worker.name.startswith("repository-bridge")


async def test_run_async_passes_arguments(bridge):
    assert await bridge.run_async(pow, 2, 10) == 1024


async def test_run_async_reraises_the_same_exception_object(bridge):
    error = StoreError("disk full")

    def _fail():
        raise error

    with pytest.raises(StoreError) as exc_info:
        await bridge.run_async(_fail)
    assert exc_info.value is error


async def test_run_async_checks_cancellation_before_calling(bridge):
    calls = []
    token = CancellationToken()
    token.cancel()
    with pytest.raises(OperationCancelled):
        await bridge.run_async(calls.append, 1, cancellation=token)
    assert calls == []


# --- run_coroutine ---

async def test_run_coroutine_runs_on_bridge_loop_thread(bridge):
    async def _thread_name():
        return threading.current_thread().name

    assert await bridge.run_coroutine(_thread_name) == "repository-bridge-loop"


async def test_run_coroutine_and_run_sync_share_the_same_loop(bridge):
    async def _loop():
        return asyncio.get_running_loop()

    assert await bridge.run_coroutine(_loop) is bridge.run_sync(_loop)


async def test_run_coroutine_reraises_the_same_exception_object(bridge):
    error = StoreError("pool exhausted")

    async def _fail():
        raise error

    with pytest.raises(StoreError) as exc_info:
        await bridge.run_coroutine(_fail)
    assert exc_info.value is error


def test_run_coroutine_on_bridge_loop_awaits_directly(bridge):
    async def _inner():
        return threading.current_thread().name

    async def _outer():
        return await bridge.run_coroutine(_inner)

    assert bridge.run_sync(_outer) == "repository-bridge-loop"


# --- CancellationToken ---

def test_token_starts_uncancelled():
    token = CancellationToken()
    assert not token.cancelled
    token.raise_if_cancelled()


def test_token_cancel_sets_flag():
    token = CancellationToken()
    token.cancel()
    assert token.cancelled


# --- default bridge ---

def test_default_bridge_is_shared():
    assert default_bridge() is default_bridge()
