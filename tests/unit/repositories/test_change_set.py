"""Unit tests for ChangeSet staging rules."""

from safety_ai.database.models import SafetyReport
from safety_ai.repositories.change_set import ChangeSet, OperationKind


class TestChangeSet:
    """Test suite for ChangeSet."""

    def test_insert_then_update_stays_insert(self):
        changes = ChangeSet()
        report = SafetyReport(file_name="a.pdf")

        changes.stage_insert(report)
        changes.stage_update(report)

        assert len(changes) == 1
        assert changes.get(SafetyReport, report.id).kind is OperationKind.INSERT

    def test_hard_delete_of_staged_insert_drops_it(self):
        changes = ChangeSet()
        report = SafetyReport(file_name="a.pdf")
        changes.stage_insert(report)

        assert changes.stage_delete(report) is True

        assert len(changes) == 0
        assert changes.get(SafetyReport, report.id) is None

    def test_soft_delete_of_staged_insert_is_kept(self):
        changes = ChangeSet()
        report = SafetyReport(file_name="a.pdf")
        changes.stage_insert(report)

        assert changes.stage_delete(report, soft=True) is True

        assert changes.get(SafetyReport, report.id).kind is OperationKind.SOFT_DELETE

    def test_delete_is_not_downgraded_by_update(self):
        changes = ChangeSet()
        report = SafetyReport(file_name="a.pdf")

        changes.stage_delete(report)
        changes.stage_update(report)

        assert changes.get(SafetyReport, report.id).kind is OperationKind.DELETE

    def test_second_delete_changes_nothing(self):
        changes = ChangeSet()
        report = SafetyReport(file_name="a.pdf")

        assert changes.stage_delete(report, soft=True) is True
        assert changes.stage_delete(report, soft=True) is False

    def test_operations_preserve_staging_order(self):
        changes = ChangeSet()
        reports = [SafetyReport(file_name=f"{i}.pdf") for i in range(3)]

        for report in reports:
            changes.stage_insert(report)

        assert [op.entity for op in changes.operations] == reports
        assert [op.entity for op in changes] == reports

    def test_contains_checks_identity(self):
        changes = ChangeSet()
        report = SafetyReport(file_name="a.pdf")
        twin = SafetyReport(file_name="a.pdf", id=report.id)
        changes.stage_insert(report)

        assert changes.contains(report) is True
        assert changes.contains(twin) is False

    def test_clear(self):
        changes = ChangeSet()
        changes.stage_insert(SafetyReport(file_name="a.pdf"))

        changes.clear()

        assert len(changes) == 0
        assert changes.operations == ()
