"""add composite indexes for dashboard queries

Revision ID: 0002
Revises: 0001
Create Date: 2025-06-16 14:30:00.000000

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0002'
down_revision: Union[str, Sequence[str], None] = '0001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Status listings ordered by upload date
    op.create_index(
        'ix_safety_reports_status_uploaded_date',
        'safety_reports',
        ['status', 'uploaded_date'],
    )
    # Severity listings ordered by analysis date
    op.create_index(
        'ix_analysis_results_severity_created_date',
        'analysis_results',
        ['severity', 'created_date'],
    )
    # Pending / high priority work queues
    op.create_index(
        'ix_recommendations_status_priority',
        'recommendations',
        ['status', 'priority'],
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_recommendations_status_priority', table_name='recommendations')
    op.drop_index('ix_analysis_results_severity_created_date', table_name='analysis_results')
    op.drop_index('ix_safety_reports_status_uploaded_date', table_name='safety_reports')
