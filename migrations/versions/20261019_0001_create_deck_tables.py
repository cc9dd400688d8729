"""Create decks and the reviewable item tables."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _review_state_columns() -> list[sa.Column]:
    return [
        sa.Column("ease_factor", sa.Float(), server_default=sa.text("2.5"), nullable=False),
        sa.Column("interval_days", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("repetition", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("next_review_time", sa.BigInteger(), server_default=sa.text("0"), nullable=False),
        sa.Column("last_review_time", sa.BigInteger(), server_default=sa.text("0"), nullable=False),
        sa.Column("first_learn_date", sa.BigInteger(), server_default=sa.text("0"), nullable=False),
        sa.Column("review_stage", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("correct_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("wrong_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "decks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("deck_type", sa.String(length=32), server_default=sa.text("'vocabulary'"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "words",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("deck_id", sa.Integer(), nullable=False),
        sa.Column("english", sa.Text(), nullable=False),
        sa.Column("translation", sa.Text(), nullable=False),
        sa.Column("part_of_speech", sa.String(length=64), server_default=sa.text("''"), nullable=False),
        sa.Column("phonetic", sa.String(length=255), server_default=sa.text("''"), nullable=False),
        sa.Column("word_type", sa.String(length=16), server_default=sa.text("'word'"), nullable=False),
        sa.Column("phrase_usage", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_review_state_columns(),
        sa.ForeignKeyConstraint(
            ("deck_id",),
            ("decks.id",),
            name="fk_words_deck_id_decks",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_words_deck_id", "words", ("deck_id",))
    op.create_index("ix_words_deck_id_next_review_time", "words", ("deck_id", "next_review_time"))

    op.create_table(
        "questions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("deck_id", sa.Integer(), nullable=False),
        sa.Column("question_type", sa.String(length=32), nullable=False),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("option_a", sa.Text(), nullable=True),
        sa.Column("option_b", sa.Text(), nullable=True),
        sa.Column("option_c", sa.Text(), nullable=True),
        sa.Column("option_d", sa.Text(), nullable=True),
        sa.Column("correct_answer", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_review_state_columns(),
        sa.ForeignKeyConstraint(
            ("deck_id",),
            ("decks.id",),
            name="fk_questions_deck_id_decks",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_questions_deck_id", "questions", ("deck_id",))
    op.create_index(
        "ix_questions_deck_id_next_review_time", "questions", ("deck_id", "next_review_time")
    )


def downgrade() -> None:
    op.drop_index("ix_questions_deck_id_next_review_time", table_name="questions")
    op.drop_index("ix_questions_deck_id", table_name="questions")
    op.drop_table("questions")
    op.drop_index("ix_words_deck_id_next_review_time", table_name="words")
    op.drop_index("ix_words_deck_id", table_name="words")
    op.drop_table("words")
    op.drop_table("decks")
