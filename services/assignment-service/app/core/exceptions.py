"""
Exceptions raised by the assignment workflow and its collaborators.
"""


class WorkflowError(Exception):
    """Base class for assignment workflow failures."""


class NonRetriableError(WorkflowError):
    """The run must stop; retrying cannot succeed."""


class TicketNotFoundError(NonRetriableError):
    def __init__(self, ticket_id: int):
        self.ticket_id = ticket_id
        super().__init__(f"Ticket {ticket_id} not found")


class DuplicateRunError(NonRetriableError):
    def __init__(self, ticket_id: int, owner_run_id: str):
        self.ticket_id = ticket_id
        self.owner_run_id = owner_run_id
        super().__init__(f"Ticket {ticket_id} is already owned by workflow run {owner_run_id}")


class InvalidTransitionError(WorkflowError):
    def __init__(self, current_state: str, new_state: str):
        self.current_state = current_state
        self.new_state = new_state
        super().__init__(f"Transition from {current_state} to {new_state} is not permitted.")


class ClassifierError(Exception):
    """The classifier could not produce a usable result."""


class ClassifierUnavailableError(ClassifierError):
    pass


class ClassifierResponseError(ClassifierError):
    pass
