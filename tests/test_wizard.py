import pytest

from api.services import wizard
from api.services.wizard import WizardState, WizardStep
from lib.error_handler import InvalidTransition

def test_happy_path_transitions():
    state = WizardState()
    state = wizard.advance(state, wizard.report_created('r-1'))
    assert state == WizardState(step=WizardStep.REVIEW, report_id='r-1')

    state = wizard.advance(state, wizard.transcript_ready())
    assert state.step == WizardStep.GENERATE
    assert state.report_id == 'r-1'

    state = wizard.advance(state, wizard.generation_complete())
    assert state.step == WizardStep.SHARE

def test_advance_does_not_mutate_input():
    original = WizardState()
    wizard.advance(original, wizard.report_created('r-1'))
    assert original == WizardState()

def test_failure_keeps_step_and_retry_clears_error():
    state = WizardState(step=WizardStep.REVIEW, report_id='r-1')

    failed = wizard.advance(state, wizard.failed('Failed to transcribe audio. Please try again.'))
    assert failed.step == WizardStep.REVIEW
    assert failed.error == 'Failed to transcribe audio. Please try again.'

    retried = wizard.advance(failed, wizard.retry())
    assert retried == state

def test_events_out_of_order_are_rejected():
    with pytest.raises(InvalidTransition) as exc_info:
        wizard.advance(WizardState(), wizard.generation_complete())
    assert exc_info.value.status_code == 409

    share_state = WizardState(step=WizardStep.SHARE, report_id='r-1')
    with pytest.raises(InvalidTransition):
        wizard.advance(share_state, wizard.report_created('r-2'))
