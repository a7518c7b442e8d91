"""create safety reports, analysis results and recommendations

Revision ID: 0001
Revises:
Create Date: 2025-06-02 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'safety_reports',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('content_type', sa.String(length=50), nullable=True),
        sa.Column('original_text', sa.Text(), nullable=True),
        sa.Column('extracted_text', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False,
                  comment='Pending, Processing, Completed, Failed, RequiresReview'),
        sa.Column('uploaded_by', sa.String(length=100), nullable=True),
        sa.Column('uploaded_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('processed_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_safety_reports_status'), 'safety_reports', ['status'])
    op.create_index(op.f('ix_safety_reports_uploaded_by'), 'safety_reports', ['uploaded_by'])
    op.create_index(op.f('ix_safety_reports_uploaded_date'), 'safety_reports', ['uploaded_date'])
    op.create_index(op.f('ix_safety_reports_is_active'), 'safety_reports', ['is_active'])

    op.create_table(
        'analysis_results',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('report_id', sa.Uuid(), nullable=False),
        sa.Column('incident_type', sa.String(length=32), nullable=False),
        sa.Column('severity', sa.String(length=32), nullable=False),
        sa.Column('risk_score', sa.Integer(), nullable=True, comment='1-10'),
        sa.Column('summary', sa.String(length=500), nullable=True),
        sa.Column('confidence_score', sa.Numeric(precision=5, scale=4), nullable=False,
                  comment='Model confidence (0.0-1.0)'),
        sa.Column('processing_time_ms', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ai_model', sa.String(length=100), nullable=True),
        sa.Column('created_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['report_id'], ['safety_reports.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_analysis_results_report_id'), 'analysis_results', ['report_id'])
    op.create_index(op.f('ix_analysis_results_incident_type'), 'analysis_results', ['incident_type'])
    op.create_index(op.f('ix_analysis_results_severity'), 'analysis_results', ['severity'])
    op.create_index(op.f('ix_analysis_results_risk_score'), 'analysis_results', ['risk_score'])
    op.create_index(op.f('ix_analysis_results_confidence_score'), 'analysis_results', ['confidence_score'])
    op.create_index(op.f('ix_analysis_results_created_date'), 'analysis_results', ['created_date'])

    op.create_table(
        'recommendations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('analysis_id', sa.Uuid(), nullable=False),
        sa.Column('recommendation_type', sa.String(length=100), nullable=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('priority', sa.String(length=32), nullable=False, server_default='Medium'),
        sa.Column('estimated_cost', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('estimated_time_hours', sa.Integer(), nullable=True),
        sa.Column('responsible_role', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='Pending'),
        sa.ForeignKeyConstraint(['analysis_id'], ['analysis_results.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_recommendations_analysis_id'), 'recommendations', ['analysis_id'])
    op.create_index(op.f('ix_recommendations_priority'), 'recommendations', ['priority'])
    op.create_index(op.f('ix_recommendations_responsible_role'), 'recommendations', ['responsible_role'])
    op.create_index(op.f('ix_recommendations_status'), 'recommendations', ['status'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_recommendations_status'), table_name='recommendations')
    op.drop_index(op.f('ix_recommendations_responsible_role'), table_name='recommendations')
    op.drop_index(op.f('ix_recommendations_priority'), table_name='recommendations')
    op.drop_index(op.f('ix_recommendations_analysis_id'), table_name='recommendations')
    op.drop_table('recommendations')

    op.drop_index(op.f('ix_analysis_results_created_date'), table_name='analysis_results')
    op.drop_index(op.f('ix_analysis_results_confidence_score'), table_name='analysis_results')
    op.drop_index(op.f('ix_analysis_results_risk_score'), table_name='analysis_results')
    op.drop_index(op.f('ix_analysis_results_severity'), table_name='analysis_results')
    op.drop_index(op.f('ix_analysis_results_incident_type'), table_name='analysis_results')
    op.drop_index(op.f('ix_analysis_results_report_id'), table_name='analysis_results')
    op.drop_table('analysis_results')

    op.drop_index(op.f('ix_safety_reports_is_active'), table_name='safety_reports')
    op.drop_index(op.f('ix_safety_reports_uploaded_date'), table_name='safety_reports')
    op.drop_index(op.f('ix_safety_reports_uploaded_by'), table_name='safety_reports')
    op.drop_index(op.f('ix_safety_reports_status'), table_name='safety_reports')
    op.drop_table('safety_reports')
