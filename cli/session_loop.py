"""
Interactive WebSocket session loop for the Tabichan CLI.

Sends one chat request, answers each clarifying question from stdin, and
prints results until the server reports completion or the socket closes.
"""

import asyncio
from typing import Callable

from tabichan import EventKind, TabichanWebSocket

from .interface import print_question, print_result


async def run_interactive_session(
    ws: TabichanWebSocket,
    query: str,
    preferences: dict | None = None,
    history: list[dict] | None = None,
    input_func: Callable[[str], str] = input,
) -> int:
    """Run one chat over ``ws`` and return a process exit code."""
    questions: asyncio.Queue = asyncio.Queue()
    finished = asyncio.Event()
    outcome = {"exit_code": 0}

    def _on_connected():
        print("✅ Connected")

    def _on_question(data):
        questions.put_nowait(data)

    def _on_complete():
        print("\n✅ Chat completed")
        finished.set()

    def _on_chat_error(err):
        print(f"💬 Chat error: {err}")

    def _on_error(err):
        print(f"⚠️  Error: {err}")

    def _on_auth_error(err):
        print(f"🔐 {err}")
        outcome["exit_code"] = 1
        finished.set()

    def _on_disconnected(info):
        if not finished.is_set():
            print(f"❌ Disconnected: {info['code']} - {info['reason']}")
            outcome["exit_code"] = 1
            finished.set()

    def _on_unknown(message):
        print(f"🔍 Unknown message: {message}")

    ws.on(EventKind.CONNECTED, _on_connected)
    ws.on(EventKind.QUESTION, _on_question)
    ws.on(EventKind.RESULT, print_result)
    ws.on(EventKind.COMPLETE, _on_complete)
    ws.on(EventKind.CHAT_ERROR, _on_chat_error)
    ws.on(EventKind.ERROR, _on_error)
    ws.on(EventKind.AUTH_ERROR, _on_auth_error)
    ws.on(EventKind.DISCONNECTED, _on_disconnected)
    ws.on(EventKind.UNKNOWN_MESSAGE, _on_unknown)

    print("🔌 Connecting...")
    await ws.connect()
    print("💬 Starting chat...")
    await ws.start_chat(query, history, preferences)

    try:
        while not finished.is_set():
            next_question = asyncio.ensure_future(questions.get())
            done_waiter = asyncio.ensure_future(finished.wait())
            done, _ = await asyncio.wait(
                {next_question, done_waiter}, return_when=asyncio.FIRST_COMPLETED
            )
            done_waiter.cancel()
            if next_question not in done:
                next_question.cancel()
                break

            data = next_question.result()
            print_question(data)
            try:
                answer = await asyncio.to_thread(input_func, "> ")
            except (EOFError, KeyboardInterrupt):
                print("\nGoodbye!")
                break
            if ws.is_connected and ws.has_active_question():
                await ws.send_response(answer.strip())
                print("✅ Response sent")
    finally:
        ws.disconnect()

    return outcome["exit_code"]
