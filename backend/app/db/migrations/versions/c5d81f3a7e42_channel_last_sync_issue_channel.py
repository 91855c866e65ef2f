"""channels.last_sync + issues.channel

Revision ID: c5d81f3a7e42
Revises: a1c4e2f0b9d3
Create Date: 2026-10-20 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c5d81f3a7e42'
down_revision = 'a1c4e2f0b9d3'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column('channels', sa.Column('last_sync', sa.DateTime(timezone=True), nullable=True))
    op.add_column('issues', sa.Column('channel', sa.String(length=50), nullable=True))
    # 问题单列表按 状态 + 渠道 过滤
    op.create_index('idx_issues_status_channel', 'issues', ['status', 'channel'])


def downgrade() -> None:
    op.drop_index('idx_issues_status_channel', table_name='issues')
    op.drop_column('issues', 'channel')
    op.drop_column('channels', 'last_sync')
