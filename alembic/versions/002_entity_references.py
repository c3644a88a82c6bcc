"""Polymorphic entity_references with existence check and orphan cleanup triggers.

Revision ID: 002
Revises: 001
Create Date: 2026-03-09

One table holds references for products, games, publishers and creators.
entity_id points into a different table depending on entity_type, so no
foreign key can express it. Two triggers stand in for one:

  validate_entity_reference()   BEFORE INSERT OR UPDATE on entity_references.
                                Looks the host up in the table picked by
                                entity_type. Missing host or unknown type
                                raises SQLSTATE 23503 (foreign_key_violation),
                                the same error a real FK would raise.

  cleanup_entity_references()   AFTER DELETE on each host table. Removes the
                                deleted host's references in the same
                                statement, so none outlive their host.
"""

from typing import Sequence, Union

from alembic import op


revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# entity_type value -> host table
HOSTS = {
    "product": "products",
    "game": "games",
    "publisher": "publishers",
    "creator": "creators",
}


def upgrade() -> None:
    op.execute("""
        CREATE TABLE entity_references (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            created_at TIMESTAMPTZ DEFAULT now(),
            entity_type TEXT NOT NULL,
            entity_id UUID NOT NULL,
            reference_type TEXT NOT NULL,
            label TEXT NOT NULL,
            url TEXT NOT NULL,
            citation_details JSONB,

            CONSTRAINT chk_entity_type CHECK (
                entity_type IN ('product', 'game', 'publisher', 'creator')
            ),
            CONSTRAINT chk_reference_type CHECK (
                reference_type IN ('official', 'source', 'review', 'social')
            )
        );
    """)

    op.execute("CREATE INDEX idx_entity_references_lookup ON entity_references (entity_type, entity_id);")

    op.execute("ALTER TABLE entity_references ENABLE ROW LEVEL SECURITY;")
    op.execute("""
        CREATE POLICY entity_references_public_read
        ON entity_references
        FOR SELECT
        USING (true);
    """)
    op.execute("""
        CREATE POLICY entity_references_admin_write
        ON entity_references
        FOR ALL
        USING (current_setting('app.role', true) = 'admin')
        WITH CHECK (current_setting('app.role', true) = 'admin');
    """)

    # Existence check. Runs before the CHECK constraint, so an unknown
    # entity_type is reported as a referential failure too.
    op.execute("""
        CREATE OR REPLACE FUNCTION validate_entity_reference()
        RETURNS TRIGGER AS $$
        DECLARE
            host_table TEXT;
            host_exists BOOLEAN;
        BEGIN
            host_table := CASE NEW.entity_type
                WHEN 'product' THEN 'products'
                WHEN 'game' THEN 'games'
                WHEN 'publisher' THEN 'publishers'
                WHEN 'creator' THEN 'creators'
                ELSE NULL
            END;

            IF host_table IS NULL THEN
                RAISE EXCEPTION 'Unknown entity type %', NEW.entity_type
                    USING ERRCODE = 'foreign_key_violation';
            END IF;

            EXECUTE format('SELECT EXISTS(SELECT 1 FROM %I WHERE id = $1)', host_table)
                INTO host_exists
                USING NEW.entity_id;

            IF NOT host_exists THEN
                RAISE EXCEPTION 'Entity % with id % does not exist', NEW.entity_type, NEW.entity_id
                    USING ERRCODE = 'foreign_key_violation';
            END IF;

            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    op.execute("""
        CREATE TRIGGER trg_validate_entity_reference
        BEFORE INSERT OR UPDATE ON entity_references
        FOR EACH ROW
        EXECUTE FUNCTION validate_entity_reference();
    """)

    # SECURITY DEFINER: the cleanup must run even when the deleting session
    # is not subject to the admin write policy on entity_references.
    op.execute("""
        CREATE OR REPLACE FUNCTION cleanup_entity_references()
        RETURNS TRIGGER
        SECURITY DEFINER
        SET search_path = public
        AS $$
        BEGIN
            DELETE FROM entity_references
            WHERE entity_type = TG_ARGV[0]
              AND entity_id = OLD.id;
            RETURN OLD;
        END;
        $$ LANGUAGE plpgsql;
    """)

    for entity_type, table in HOSTS.items():
        op.execute(f"""
            CREATE TRIGGER trg_{table}_cleanup_references
            AFTER DELETE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION cleanup_entity_references('{entity_type}');
        """)


def downgrade() -> None:
    for table in HOSTS.values():
        op.execute(f"DROP TRIGGER IF EXISTS trg_{table}_cleanup_references ON {table};")
    op.execute("DROP FUNCTION IF EXISTS cleanup_entity_references();")
    op.execute("DROP TABLE IF EXISTS entity_references CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS validate_entity_reference();")
