"""Linear multi-step wizard over an immutable draft.

A wizard is a fixed sequence of step definitions plus one controller value
holding the position, the draft and whatever the current step is editing.

Step kinds:

- ``TextStep``: free text with a length limit; ``apply`` may raise
  ValueError, whose message is shown inline while the step stays put.
- ``ChoiceStep``: a short list; up/down clamp, digits move the cursor,
  enter commits. Two options make a toggle.
- ``AsyncStep``: dispatches a job on entry and waits for its ``TaskDone``.
  Success moves forward; failure drops back to the previous step with a
  message. Results carrying an old token are ignored.
- ``SummaryStep``: confirm finishes the wizard, edit returns to step one.

``esc`` always goes back without validation; going back from the first step
cancels the wizard.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, Union

from .keys import CONFIRM_KEYS, DOWN_KEYS, UP_KEYS, KeyPress, digit_of
from .menu import filter_indices
from .messages import NO_EFFECTS, Dispatch, Effects, Emit, Schedule, TaskDone, Tick, Token, WizardFinished

PROGRESS_TIMER = "wizard.progress"
PROGRESS_INTERVAL_S = 0.1

SUMMARY_CONFIRM = 0
SUMMARY_EDIT = 1


@dataclass(frozen=True, slots=True)
class Choice:
    label: str
    value: Any
    description: str = ""


@dataclass(frozen=True, slots=True)
class TextStep:
    name: str
    title: str
    read: Callable[[Any], str]
    apply: Callable[[Any, str], Any]
    hint: str = ""
    min_length: int = 1
    max_length: int = 100
    masked: bool = False
    too_short_message: str = ""
    too_long_message: str = ""


@dataclass(frozen=True, slots=True)
class ChoiceStep:
    name: str
    title: str
    choices: tuple[Choice, ...]
    read: Callable[[Any], Any]
    apply: Callable[[Any, Any], Any]
    hint: str = ""
    filterable: bool = False


@dataclass(frozen=True, slots=True)
class AsyncStep:
    name: str
    title: str
    job: Callable[[Any], Callable[[], object]]
    describe_error: Callable[[str], str] = str


@dataclass(frozen=True, slots=True)
class SummaryStep:
    name: str
    title: str
    lines: Callable[[Any], tuple[tuple[str, str], ...]]
    confirm_label: str = "確認開始"
    edit_label: str = "重新編輯"


Step = Union[TextStep, ChoiceStep, AsyncStep, SummaryStep]


def toggle_step(
    name: str,
    title: str,
    *,
    read: Callable[[Any], bool],
    apply: Callable[[Any, bool], Any],
    on_label: str,
    off_label: str,
    hint: str = "",
) -> ChoiceStep:
    return ChoiceStep(
        name=name,
        title=title,
        choices=(Choice(on_label, True), Choice(off_label, False)),
        read=read,
        apply=apply,
        hint=hint,
    )


@dataclass(frozen=True, slots=True)
class WizardController:
    wizard: str
    steps: tuple[Step, ...]
    draft: Any
    epoch: int = 0
    index: int = 0
    text: str = ""
    cursor: int = 0
    filter_text: str = ""
    filtering: bool = False
    error: str = ""
    attempt: int = 0
    pending: bool = False
    waited_ticks: int = 0

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError("a wizard needs at least one step")
        if any(isinstance(s, AsyncStep) for s in self.steps[:1]):
            raise ValueError("the first step cannot be asynchronous")
        if not (0 <= self.index < len(self.steps)):
            raise ValueError("index must point at a step")

    @classmethod
    def create(cls, *, wizard: str, steps: tuple[Step, ...], draft: Any, epoch: int = 0) -> "WizardController":
        ctl = cls(wizard=wizard, steps=tuple(steps), draft=draft, epoch=epoch)
        ctl, _ = ctl._enter(0)
        return ctl

    # -- queries ---------------------------------------------------------

    @property
    def step(self) -> Step:
        return self.steps[self.index]

    @property
    def token(self) -> Token:
        return (self.epoch, self.attempt)

    @property
    def visible_choices(self) -> tuple[int, ...]:
        step = self.step
        if not isinstance(step, ChoiceStep):
            return ()
        if not step.filterable:
            return tuple(range(len(step.choices)))
        labels = [f"{c.label} {c.description}" for c in step.choices]
        return filter_indices(labels, self.filter_text)

    @property
    def display_text(self) -> str:
        step = self.step
        if isinstance(step, TextStep) and step.masked:
            return "•" * len(self.text)
        return self.text

    # -- transitions -----------------------------------------------------

    def _enter(self, index: int, *, error: str = "") -> tuple["WizardController", Effects]:
        """Move to ``index`` and rebuild that step's editing state from the draft."""
        step = self.steps[index]
        base = replace(
            self,
            index=index,
            text="",
            cursor=0,
            filter_text="",
            filtering=False,
            error=error,
            pending=False,
            waited_ticks=0,
        )
        if isinstance(step, TextStep):
            return replace(base, text=str(step.read(self.draft) or "")), NO_EFFECTS
        if isinstance(step, ChoiceStep):
            current = step.read(self.draft)
            cursor = next((i for i, c in enumerate(step.choices) if c.value == current), 0)
            return replace(base, cursor=cursor), NO_EFFECTS
        if isinstance(step, AsyncStep):
            started = replace(base, attempt=self.attempt + 1, pending=True)
            job = step.job(self.draft)
            return started, (
                Dispatch(step.name, started.token, job),
                Schedule(PROGRESS_INTERVAL_S, Tick(PROGRESS_TIMER, started.token)),
            )
        return base, NO_EFFECTS

    def _forward(self, draft: Any) -> tuple["WizardController", Effects]:
        moved = replace(self, draft=draft)
        if self.index + 1 >= len(self.steps):
            return moved, (Emit(WizardFinished(self.wizard, result=draft)),)
        return moved._enter(self.index + 1)

    def _backward(self) -> tuple["WizardController", Effects]:
        target = self.index - 1
        while target >= 0 and isinstance(self.steps[target], AsyncStep):
            target -= 1
        if target < 0:
            return self._cancelled()
        # Bumping the attempt orphans any job still running for this step.
        left = replace(self, attempt=self.attempt + 1) if self.pending else self
        return left._enter(target)

    def _cancelled(self) -> tuple["WizardController", Effects]:
        return replace(self, pending=False), (Emit(WizardFinished(self.wizard, cancelled=True)),)

    # -- events ----------------------------------------------------------

    def update(self, event: object) -> tuple["WizardController", Effects]:
        if isinstance(event, TaskDone):
            return self._on_task_done(event)
        if isinstance(event, Tick):
            return self._on_tick(event)
        if not isinstance(event, KeyPress):
            return self, NO_EFFECTS

        step = self.step
        if event.key == "esc" and not self.filtering:
            return self._backward()
        if isinstance(step, TextStep):
            return self._update_text(step, event)
        if isinstance(step, ChoiceStep):
            return self._update_choice(step, event)
        if isinstance(step, SummaryStep):
            return self._update_summary(event)
        # Async steps accept nothing but esc.
        return self, NO_EFFECTS

    def _update_text(self, step: TextStep, event: KeyPress) -> tuple["WizardController", Effects]:
        if event.key == "enter":
            return self._submit_text(step)
        if event.key == "backspace":
            return replace(self, text=self.text[:-1]), NO_EFFECTS
        if event.is_printable and len(self.text) < step.max_length:
            return replace(self, text=self.text + event.text), NO_EFFECTS
        return self, NO_EFFECTS

    def _submit_text(self, step: TextStep) -> tuple["WizardController", Effects]:
        value = self.text.strip()
        if len(value) < step.min_length:
            message = step.too_short_message or f"至少需要 {step.min_length} 個字元"
            return replace(self, error=message), NO_EFFECTS
        if len(value) > step.max_length:
            message = step.too_long_message or f"不能超過 {step.max_length} 個字元"
            return replace(self, error=message), NO_EFFECTS
        try:
            draft = step.apply(self.draft, value)
        except ValueError as e:
            return replace(self, error=str(e)), NO_EFFECTS
        return self._forward(draft)

    def _update_choice(self, step: ChoiceStep, event: KeyPress) -> tuple["WizardController", Effects]:
        if self.filtering:
            return self._update_choice_filter(event)
        visible = self.visible_choices
        key = event.key
        if key in UP_KEYS or key in DOWN_KEYS:
            if not visible:
                return self, NO_EFFECTS
            pos = visible.index(self.cursor) if self.cursor in visible else 0
            pos = max(0, pos - 1) if key in UP_KEYS else min(len(visible) - 1, pos + 1)
            return replace(self, cursor=visible[pos]), NO_EFFECTS
        if key == "/" and step.filterable:
            return replace(self, filtering=True), NO_EFFECTS
        number = digit_of(key)
        if number is not None:
            if number <= len(visible):
                return replace(self, cursor=visible[number - 1]), NO_EFFECTS
            return self, NO_EFFECTS
        if key in CONFIRM_KEYS:
            if self.cursor not in visible:
                return self, NO_EFFECTS
            try:
                draft = step.apply(self.draft, step.choices[self.cursor].value)
            except ValueError as e:
                return replace(self, error=str(e)), NO_EFFECTS
            return self._forward(draft)
        return self, NO_EFFECTS

    def _update_choice_filter(self, event: KeyPress) -> tuple["WizardController", Effects]:
        if event.key == "esc":
            return self._with_filter("", filtering=False), NO_EFFECTS
        if event.key == "enter":
            return replace(self, filtering=False), NO_EFFECTS
        if event.key == "backspace":
            return self._with_filter(self.filter_text[:-1]), NO_EFFECTS
        if event.is_printable:
            return self._with_filter(self.filter_text + event.text), NO_EFFECTS
        return self, NO_EFFECTS

    def _with_filter(self, text: str, *, filtering: bool = True) -> "WizardController":
        narrowed = replace(self, filter_text=text, filtering=filtering)
        visible = narrowed.visible_choices
        if visible and narrowed.cursor not in visible:
            narrowed = replace(narrowed, cursor=visible[0])
        return narrowed

    def _update_summary(self, event: KeyPress) -> tuple["WizardController", Effects]:
        key = event.key
        if key in UP_KEYS:
            return replace(self, cursor=SUMMARY_CONFIRM), NO_EFFECTS
        if key in DOWN_KEYS:
            return replace(self, cursor=SUMMARY_EDIT), NO_EFFECTS
        number = digit_of(key)
        if number in (1, 2):
            return replace(self, cursor=number - 1), NO_EFFECTS
        if key in CONFIRM_KEYS:
            if self.cursor == SUMMARY_CONFIRM:
                return self, (Emit(WizardFinished(self.wizard, result=self.draft)),)
            return self._enter(0)
        return self, NO_EFFECTS

    def _on_task_done(self, event: TaskDone) -> tuple["WizardController", Effects]:
        step = self.step
        if not (isinstance(step, AsyncStep) and self.pending and event.name == step.name and event.token == self.token):
            return self, NO_EFFECTS
        if event.ok:
            return replace(self, pending=False)._forward(self.draft)
        message = step.describe_error(event.error or "")
        back = self.index - 1
        return replace(self, pending=False)._enter(back, error=message)

    def _on_tick(self, event: Tick) -> tuple["WizardController", Effects]:
        if event.timer != PROGRESS_TIMER or event.token != self.token or not self.pending:
            return self, NO_EFFECTS
        ticked = replace(self, waited_ticks=self.waited_ticks + 1)
        return ticked, (Schedule(PROGRESS_INTERVAL_S, Tick(PROGRESS_TIMER, ticked.token)),)
