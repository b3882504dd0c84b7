"""Create the ncm reference table.

The table may already exist when the database was provisioned by an earlier
deployment; in that case the migration only records the revision.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1f9a7d2e10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    if sa.inspect(bind).has_table("ncm"):
        return

    op.create_table(
        "ncm",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("code_no_symbols", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("initial_date", sa.Text(), nullable=True),
        sa.Column("final_date", sa.Text(), nullable=True),
        sa.Column("type_year_ini", sa.Text(), nullable=True),
        sa.Column("number_ato_ini", sa.Text(), nullable=True),
        sa.Column("year_ato_ini", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_ncm"),
    )
    op.create_index("ix_ncm_code", "ncm", ["code"])
    op.create_index("ix_ncm_code_no_symbols", "ncm", ["code_no_symbols"])


def downgrade() -> None:
    op.drop_index("ix_ncm_code_no_symbols", table_name="ncm")
    op.drop_index("ix_ncm_code", table_name="ncm")
    op.drop_table("ncm")
