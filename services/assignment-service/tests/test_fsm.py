import pytest
from app.core.exceptions import InvalidTransitionError
from app.core.fsm import TicketStateMachine, TicketState, has_reached
from app.models.ticket import AuditLog

def test_fsm_valid_transition(db_session, make_ticket):
    ticket = make_ticket()

    fsm = TicketStateMachine(db_session)
    updated_ticket = fsm.transition(
        ticket=ticket,
        new_state=TicketState.TRIAGING,
        actor="assignment-workflow",
        action="triage",
        reason="Assignment workflow started"
    )
    db_session.commit()

    assert updated_ticket.status == TicketState.TRIAGING
    assert len(updated_ticket.history_log) == 2
    assert updated_ticket.history_log[-1]["previous_state"] == TicketState.CREATED

    audit = db_session.query(AuditLog).filter_by(ticket_id=ticket.id, action="triage").first()
    assert audit is not None
    assert audit.previous_state == TicketState.CREATED
    assert audit.new_state == TicketState.TRIAGING
    assert audit.actor == "assignment-workflow"

@pytest.mark.parametrize("new_state", [TicketState.CLASSIFIED, TicketState.ASSIGNED, TicketState.CREATED])
def test_fsm_rejects_skipped_or_repeated_stages(db_session, make_ticket, new_state):
    ticket = make_ticket()

    fsm = TicketStateMachine(db_session)

    with pytest.raises(InvalidTransitionError) as exc:
        fsm.transition(
            ticket=ticket,
            new_state=new_state,
            actor="assignment-workflow",
            action="skip"
        )

    assert exc.value.current_state == TicketState.CREATED
    assert exc.value.new_state == new_state

def test_fsm_assigned_is_terminal(db_session, make_ticket):
    ticket = make_ticket()
    fsm = TicketStateMachine(db_session)
    for state in [TicketState.TRIAGING, TicketState.CLASSIFIED, TicketState.ASSIGNED]:
        fsm.transition(ticket=ticket, new_state=state, actor="test", action=state)

    with pytest.raises(InvalidTransitionError):
        fsm.transition(ticket=ticket, new_state=TicketState.TRIAGING, actor="test", action="rewind")

def test_has_reached():
    assert has_reached(TicketState.CLASSIFIED, TicketState.TRIAGING)
    assert has_reached(TicketState.CLASSIFIED, TicketState.CLASSIFIED)
    assert not has_reached(TicketState.TRIAGING, TicketState.ASSIGNED)

