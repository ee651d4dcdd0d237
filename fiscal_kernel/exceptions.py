"""
Typed Exception Hierarchy for the Fiscal Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the fiscal kernel (a REST layer, a worker, a test) must be able to
tell apart "the request was malformed", "the draft is in the wrong state" and
"the record does not exist" without parsing message strings.  Every error
therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (current status, attempted event, ids)

Example - RIGHT way:
    try:
        workflow.finalize_draft(draft_id)
    except DraftAlreadyFinalizedError as e:
        return {"error": e.code, "document_id": e.final_document_id}
    except InvalidDraftTransitionError as e:
        return {"error": e.code, "status": e.current_status, "event": e.event}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FiscalKernelError (base)
    |
    +-- FiscalValidationError
    |   +-- DraftValidationError
    |   +-- UnknownRecurrenceKindError
    |   +-- InvalidObligationTemplateError
    |   +-- InvalidReviewDecisionError
    |   +-- InvalidCorrectionError
    |   +-- InvalidAmountError
    |   +-- InvalidAccessKeyError
    |
    +-- NotFoundError
    |   +-- DraftNotFoundError
    |   +-- ProducerNotFoundError
    |   +-- OfficialDocumentNotFoundError
    |   +-- ReminderNotFoundError
    |
    +-- InvalidDraftTransitionError
    |
    +-- PreconditionError
    |   +-- DraftNotApprovedError
    |   +-- DraftAlreadyFinalizedError
    |   +-- SequenceExhaustedError
    |
    +-- ConcurrencyError
    |   +-- ConcurrentDraftModificationError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                          | When Raised
--------------|-------------------------------|------------------------------------
Validation    | DRAFT_VALIDATION_FAILED       | Draft header/items incomplete
              | UNKNOWN_RECURRENCE_KIND       | Template kind not in the catalog enum
              | INVALID_OBLIGATION_TEMPLATE   | Template fields out of range
              | INVALID_REVIEW_DECISION       | Review decision not recognised
              | INVALID_CORRECTION            | Correction value has the wrong type
              | INVALID_AMOUNT                | Quantity or price is NaN, infinite or not a number
              | INVALID_ACCESS_KEY            | Key malformed or check digit wrong
--------------|-------------------------------|------------------------------------
Not found     | DRAFT_NOT_FOUND               | Draft id does not exist
              | PRODUCER_NOT_FOUND            | Producer id does not exist
              | OFFICIAL_DOCUMENT_NOT_FOUND   | Document id / key does not exist
              | REMINDER_NOT_FOUND            | Scheduled reminder id does not exist
--------------|-------------------------------|------------------------------------
Transition    | INVALID_DRAFT_TRANSITION      | Event not allowed from current status
--------------|-------------------------------|------------------------------------
Precondition  | DRAFT_NOT_APPROVED            | Finalize on a non-approved draft
              | DRAFT_ALREADY_FINALIZED       | Second finalize of the same draft
              | SEQUENCE_EXHAUSTED            | Document number overflowed 9 digits
--------------|-------------------------------|------------------------------------
Concurrency   | CONCURRENT_DRAFT_MODIFICATION | Draft changed under a stale read
--------------|-------------------------------|------------------------------------
Immutability  | IMMUTABILITY_VIOLATION        | Write to a finalized/official record

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation and precondition errors are never retried automatically.
2. InvalidDraftTransitionError and ConcurrentDraftModificationError mean the
   caller holds stale state: re-fetch the draft before deciding what to do.
3. ImmutabilityViolationError indicates a programming error or tampering;
   log it and stop.
"""


class FiscalKernelError(Exception):
    """
    Base exception for all fiscal kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "FISCAL_KERNEL_ERROR"


# Validation exceptions


class FiscalValidationError(FiscalKernelError):
    """Base exception for malformed or missing input."""

    code: str = "VALIDATION_ERROR"


class DraftValidationError(FiscalValidationError):
    """Draft header or items do not satisfy the required fields."""

    code: str = "DRAFT_VALIDATION_FAILED"

    def __init__(self, problems: list[str] | tuple[str, ...], draft_id: str | None = None):
        self.problems = tuple(problems)
        self.draft_id = draft_id
        super().__init__(
            "Draft validation failed: " + "; ".join(self.problems)
        )


class UnknownRecurrenceKindError(FiscalValidationError):
    """Obligation template declares a recurrence kind the calculator does not know."""

    code: str = "UNKNOWN_RECURRENCE_KIND"

    def __init__(self, template_name: str, recurrence_kind: str):
        self.template_name = template_name
        self.recurrence_kind = recurrence_kind
        super().__init__(
            f"Obligation '{template_name}' has unknown recurrence kind "
            f"'{recurrence_kind}'"
        )


class InvalidObligationTemplateError(FiscalValidationError):
    """Obligation template fields are out of range or inconsistent."""

    code: str = "INVALID_OBLIGATION_TEMPLATE"

    def __init__(self, template_name: str, reason: str):
        self.template_name = template_name
        self.reason = reason
        super().__init__(f"Obligation '{template_name}' is invalid: {reason}")


class InvalidReviewDecisionError(FiscalValidationError):
    """Review decision is not approved, needs_revision or rejected."""

    code: str = "INVALID_REVIEW_DECISION"

    def __init__(self, decision: str):
        self.decision = decision
        super().__init__(f"Invalid review decision: '{decision}'")


class InvalidCorrectionError(FiscalValidationError):
    """A correction entry carries a value of the wrong type."""

    code: str = "INVALID_CORRECTION"

    def __init__(self, field_name: str, reason: str):
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Invalid correction for '{field_name}': {reason}")


class InvalidAmountError(FiscalValidationError):
    """A quantity or monetary field is not a finite number."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field_name: str, value: object):
        self.field_name = field_name
        self.value = value
        super().__init__(f"{field_name} is not a finite number: {value!r}")


class InvalidAccessKeyError(FiscalValidationError):
    """Access key is malformed or fails the modulus-11 check."""

    code: str = "INVALID_ACCESS_KEY"

    def __init__(self, access_key: str, reason: str):
        self.access_key = access_key
        self.reason = reason
        super().__init__(f"Invalid access key '{access_key}': {reason}")


# Not-found exceptions


class NotFoundError(FiscalKernelError):
    """Base exception for references to records that do not exist."""

    code: str = "NOT_FOUND"


class DraftNotFoundError(NotFoundError):
    """Draft with given ID was not found."""

    code: str = "DRAFT_NOT_FOUND"

    def __init__(self, draft_id: str):
        self.draft_id = draft_id
        super().__init__(f"Draft not found: {draft_id}")


class ProducerNotFoundError(NotFoundError):
    """Producer with given ID was not found."""

    code: str = "PRODUCER_NOT_FOUND"

    def __init__(self, producer_id: str):
        self.producer_id = producer_id
        super().__init__(f"Producer not found: {producer_id}")


class OfficialDocumentNotFoundError(NotFoundError):
    """Official document with given ID or access key was not found."""

    code: str = "OFFICIAL_DOCUMENT_NOT_FOUND"

    def __init__(self, document_ref: str):
        self.document_ref = document_ref
        super().__init__(f"Official document not found: {document_ref}")


class ReminderNotFoundError(NotFoundError):
    """Scheduled reminder with given ID was not found."""

    code: str = "REMINDER_NOT_FOUND"

    def __init__(self, reminder_id: str):
        self.reminder_id = reminder_id
        super().__init__(f"Scheduled reminder not found: {reminder_id}")


# Lifecycle exceptions


class InvalidDraftTransitionError(FiscalKernelError):
    """Event is not permitted from the draft's current status."""

    code: str = "INVALID_DRAFT_TRANSITION"

    def __init__(
        self,
        current_status: str,
        event: str,
        draft_id: str | None = None,
        requested_status: str | None = None,
    ):
        self.current_status = current_status
        self.event = event
        self.draft_id = draft_id
        self.requested_status = requested_status
        target = f" -> '{requested_status}'" if requested_status else ""
        super().__init__(
            f"Cannot apply '{event}'{target} to draft in status '{current_status}'"
        )


class PreconditionError(FiscalKernelError):
    """Base exception for operations whose preconditions do not hold."""

    code: str = "PRECONDITION_FAILED"


class DraftNotApprovedError(PreconditionError):
    """Finalize attempted on a draft that is not approved."""

    code: str = "DRAFT_NOT_APPROVED"

    def __init__(self, draft_id: str, current_status: str):
        self.draft_id = draft_id
        self.current_status = current_status
        self.event = "finalize"
        super().__init__(
            f"Draft {draft_id} must be approved before finalizing "
            f"(current status: '{current_status}')"
        )


class DraftAlreadyFinalizedError(PreconditionError):
    """Finalize attempted on a draft that already produced a document."""

    code: str = "DRAFT_ALREADY_FINALIZED"

    def __init__(self, draft_id: str, final_document_id: str | None):
        self.draft_id = draft_id
        self.final_document_id = final_document_id
        super().__init__(
            f"Draft {draft_id} was already finalized "
            f"(document {final_document_id})"
        )


class SequenceExhaustedError(PreconditionError):
    """A document numbering sequence outgrew its fixed width."""

    code: str = "SEQUENCE_EXHAUSTED"

    def __init__(self, sequence_name: str, value: int):
        self.sequence_name = sequence_name
        self.value = value
        super().__init__(
            f"Sequence '{sequence_name}' exhausted at value {value}"
        )


# Concurrency exceptions


class ConcurrencyError(FiscalKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrentDraftModificationError(ConcurrencyError):
    """Draft was modified by another transaction after it was read."""

    code: str = "CONCURRENT_DRAFT_MODIFICATION"

    def __init__(self, draft_id: str):
        self.draft_id = draft_id
        super().__init__(
            f"Draft {draft_id} was modified concurrently; re-fetch and retry"
        )


# Immutability exceptions


class ImmutabilityError(FiscalKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted modification of a finalized or official record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
