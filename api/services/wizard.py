"""Record -> review -> generate -> share wizard as an explicit state machine.

Transitions are pure: ``advance`` never mutates the state it is given.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from lib.error_handler import InvalidTransition

class WizardStep(str, Enum):
    RECORD = 'record'
    REVIEW = 'review'
    GENERATE = 'generate'
    SHARE = 'share'

class WizardState(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: WizardStep = WizardStep.RECORD
    report_id: Optional[str] = None
    error: Optional[str] = None

class Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    report_id: Optional[str] = None
    message: Optional[str] = None

def report_created(report_id: str) -> Event:
    return Event(name='report_created', report_id=report_id)

def transcript_ready() -> Event:
    return Event(name='transcript_ready')

def generation_complete() -> Event:
    return Event(name='generation_complete')

def failed(message: str) -> Event:
    return Event(name='failed', message=message)

def retry() -> Event:
    return Event(name='retry')

# (current step, event name) -> next step
TRANSITIONS = {
    (WizardStep.RECORD, 'report_created'): WizardStep.REVIEW,
    (WizardStep.REVIEW, 'transcript_ready'): WizardStep.GENERATE,
    (WizardStep.GENERATE, 'generation_complete'): WizardStep.SHARE,
}

def advance(state: WizardState, event: Event) -> WizardState:
    if event.name == 'failed':
        return state.model_copy(update={'error': event.message or 'Something went wrong.'})
    if event.name == 'retry':
        return state.model_copy(update={'error': None})

    next_step = TRANSITIONS.get((state.step, event.name))
    if next_step is None:
        raise InvalidTransition(state.step.value, event.name)

    update = {'step': next_step, 'error': None}
    if event.report_id is not None:
        update['report_id'] = event.report_id
    return state.model_copy(update=update)
