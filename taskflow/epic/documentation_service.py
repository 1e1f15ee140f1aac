import logging
import os
import time
from typing import Any, Dict, List

import openai
from openai import OpenAI


class DocumentationServiceError(Exception):
    pass


class DocumentationTimeoutError(DocumentationServiceError):
    pass


class DocumentationInvalidResponseError(DocumentationServiceError):
    pass


class DocumentationService:
    """
    Provider-agnostic generator for epic documentation.

    The payload is plain data: the epic, its linked tasks and their subtasks.
    `placeholder` (default) renders a deterministic markdown summary;
    `openai` asks a chat model for the same document.
    """

    def __init__(self, timeout: int = 30):
        self.timeout = timeout
        self.provider = os.getenv("AI_PROVIDER", "placeholder").lower()
        self.openai_key = os.getenv("OPENAI_API_KEY")
        self.openai_model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.logger = logging.getLogger("taskflow.epic")

    def generate(self, payload: Dict[str, Any]) -> str:
        epic = payload.get("epic") or {}
        tasks = payload.get("tasks") or []

        self.logger.info(
            "doc_request_started",
            extra={
                "provider": self.provider,
                "epic_id": epic.get("id"),
                "task_count": len(tasks),
            },
        )

        start = time.time()

        if self.provider == "openai" and self.openai_key:
            return self._generate_openai(payload, start)

        return self._generate_placeholder(payload, start)

    # -------------------------
    # Providers
    # -------------------------

    def _generate_openai(self, payload: Dict[str, Any], start: float) -> str:
        client = OpenAI(api_key=self.openai_key, timeout=self.timeout)

        system_prompt = (
            "Write project documentation for a completed epic: an overview, "
            "what was delivered per task, open items and lessons learned. Use markdown."
        )

        try:
            response = client.chat.completions.create(
                model=self.openai_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": self._render_context(payload)},
                ],
                temperature=0.2,
                max_tokens=1200,
            )
        except openai.APITimeoutError as exc:
            raise DocumentationTimeoutError("OpenAI timeout") from exc
        except openai.OpenAIError as exc:
            raise DocumentationServiceError("AI provider failure") from exc

        choices = response.choices or []
        content = (choices[0].message.content or "").strip() if choices else ""
        if not content:
            raise DocumentationInvalidResponseError("Empty response from OpenAI")

        self._log_success(start, "openai")
        return content

    def _generate_placeholder(self, payload: Dict[str, Any], start: float) -> str:
        epic = payload.get("epic") or {}
        tasks: List[Dict[str, Any]] = payload.get("tasks") or []

        if not epic.get("title"):
            raise DocumentationInvalidResponseError("Epic has no title to document")

        done = [t for t in tasks if t.get("status") == "completed"]

        lines = [
            f"# {epic['title']}",
            "",
            epic.get("description") or "_No description._",
            "",
            "## Summary",
            f"- Status: {epic.get('status')}",
            f"- Tasks: {len(tasks)} ({len(done)} completed)",
            "",
            "## Tasks",
        ]

        if not tasks:
            lines.append("- No tasks are linked to this epic.")

        for t in tasks:
            mark = "x" if t.get("status") == "completed" else " "
            lines.append(f"- [{mark}] {t.get('title')} ({t.get('status')}, {t.get('priority')} priority)")
            for s in t.get("subtasks") or []:
                sub_mark = "x" if s.get("completed") else " "
                lines.append(f"  - [{sub_mark}] {s.get('title')}")

        open_items = [t for t in tasks if t.get("status") != "completed"]
        if open_items:
            lines += ["", "## Open items"]
            lines += [f"- {t.get('title')}" for t in open_items]

        self._log_success(start, "placeholder")
        return "\n".join(lines)

    @staticmethod
    def _render_context(payload: Dict[str, Any]) -> str:
        epic = payload.get("epic") or {}
        parts = [
            f"Epic: {epic.get('title')}",
            f"Description: {epic.get('description') or '-'}",
            "Tasks:",
        ]
        for t in payload.get("tasks") or []:
            parts.append(f"- {t.get('title')} [{t.get('status')}] {t.get('description') or ''}".rstrip())
            for s in t.get("subtasks") or []:
                parts.append(f"  - {'done' if s.get('completed') else 'open'}: {s.get('title')}")
        return "\n".join(parts)

    # -------------------------
    # Logging helpers
    # -------------------------

    def _log_success(self, start: float, provider: str) -> None:
        elapsed = round(time.time() - start, 3)
        self.logger.info(
            "doc_request_succeeded",
            extra={"provider": provider, "elapsed_seconds": elapsed},
        )
