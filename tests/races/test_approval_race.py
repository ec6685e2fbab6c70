"""
Concurrent decisions on one approval.

Two reviewers approve and reject the same PERIOD_CLOSE approval at the
same moment.  The approval row lock serializes them: exactly one decision
is applied and the other reviewer gets AlreadyProcessedError.

Requires PostgreSQL (real row locks); skipped on SQLite.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier
from uuid import uuid4

import pytest

from stock_kernel.db.engine import get_session_factory, session_scope
from stock_kernel.domain.approval import ApprovalStatus
from stock_kernel.domain.period import PeriodStatus
from stock_kernel.exceptions import AlreadyProcessedError
from stock_kernel.models.period import Period
from stock_services.workflow import PeriodCloseWorkflow

pytestmark = [pytest.mark.postgres]


@pytest.fixture
def pending_approval(session, workflow, ready_period, test_actor_id):
    approval = workflow.request_close(ready_period.period.id, test_actor_id)
    session.commit()
    return approval, ready_period.period.id


def _decide(decision, approval_id, barrier, clock):
    factory = get_session_factory()
    barrier.wait(timeout=10)
    try:
        with session_scope(factory) as session:
            gateway = PeriodCloseWorkflow(session, clock=clock).gateway
            if decision == "approve":
                gateway.approve(approval_id, uuid4())
            else:
                gateway.reject(approval_id, uuid4(), comments="race")
        return decision
    except AlreadyProcessedError:
        return "lost"


class TestApprovalRace:
    def test_exactly_one_decision_wins(self, session, pending_approval, deterministic_clock):
        approval, period_id = pending_approval
        barrier = Barrier(2)

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [
                pool.submit(_decide, decision, approval.id, barrier, deterministic_clock)
                for decision in ("approve", "reject")
            ]
            outcomes = sorted(f.result(timeout=30) for f in futures)

        assert outcomes.count("lost") == 1
        winner = next(o for o in outcomes if o != "lost")

        session.expire_all()
        period = session.get(Period, period_id)
        final = PeriodCloseWorkflow(session).gateway.get(approval.id)
        if winner == "approve":
            assert final.status == ApprovalStatus.APPROVED
            assert period.status == PeriodStatus.CLOSED.value
        else:
            assert final.status == ApprovalStatus.REJECTED
            assert period.status == PeriodStatus.OPEN.value

    def test_parallel_approvals_close_once(self, session, pending_approval, deterministic_clock):
        approval, period_id = pending_approval
        barrier = Barrier(3)

        with ThreadPoolExecutor(max_workers=3) as pool:
            futures = [
                pool.submit(_decide, "approve", approval.id, barrier, deterministic_clock)
                for _ in range(3)
            ]
            outcomes = [f.result(timeout=30) for f in futures]

        assert outcomes.count("approve") == 1
        assert outcomes.count("lost") == 2
