"""Interactive collection of business context before generation."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List

from .models import FileKind

Ask = Callable[[str], str]

_YES = {"y", "yes"}


class ContextPrompter:
    """Asks kind-specific questions and joins the non-empty answers."""

    def __init__(self, ask: Ask | None = None) -> None:
        self._ask = ask or input

    def collect(self, path: Path | str, kind: FileKind) -> str:
        print(f"\nBusiness context for {Path(path).name}")
        if kind is FileKind.MODEL:
            answers = self._model_questions()
        elif kind is FileKind.CONTROLLER:
            answers = self._controller_questions()
        elif kind is FileKind.SERVICE:
            answers = self._service_questions()
        else:
            answers = [self.ask("Business context or notes for these tests: ")]
        return "\n".join(answer for answer in answers if answer)

    def ask(self, question: str) -> str:
        return self._ask(question).strip()

    def confirm(self, question: str) -> bool:
        return self.ask(f"{question} [y/N] ").lower() in _YES

    def _model_questions(self) -> List[str]:
        answers = [self.ask("What is the business role of this model? ")]
        if self.confirm("Are there specific business rules to test?"):
            answers.append(self.ask("Describe the important business rules: "))
        if self.confirm("Are there particular edge cases?"):
            answers.append(self.ask("Describe the edge cases: "))
        return answers

    def _controller_questions(self) -> List[str]:
        answers = [self.ask("What is the role of this controller? ")]
        if self.confirm("Are there specific permissions or authorization rules?"):
            answers.append(self.ask("Describe the authorization rules: "))
        return answers

    def _service_questions(self) -> List[str]:
        return [
            self.ask("What does this service do? "),
            self.ask("Which error cases should be covered? "),
        ]


__all__ = ["ContextPrompter"]
