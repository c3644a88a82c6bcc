"""Catalog core: host tables, semantic labels, join tables and admin write policies.

Revision ID: 001
Revises:
Create Date: 2026-03-02
"""

from alembic import op


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

# Every catalog table: public read, admin-only write.
CATALOG_TABLES = [
    "publishers",
    "creators",
    "semantic_labels",
    "games",
    "products",
    "products_creators",
    "games_creators",
    "product_semantic_labels",
    "game_semantic_labels",
    "game_based_on",
    "product_isbns",
]


def enable_admin_write_rls(table: str) -> None:
    """Public SELECT, writes only when the session carries app.role = 'admin'."""
    op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;")
    op.execute(f"""
        CREATE POLICY {table}_public_read
        ON {table}
        FOR SELECT
        USING (true);
    """)
    op.execute(f"""
        CREATE POLICY {table}_admin_write
        ON {table}
        FOR ALL
        USING (current_setting('app.role', true) = 'admin')
        WITH CHECK (current_setting('app.role', true) = 'admin');
    """)


def upgrade():
    op.execute("""
        CREATE TABLE publishers (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
            name TEXT UNIQUE NOT NULL,
            slug TEXT UNIQUE NOT NULL,
            description TEXT
        );
    """)

    op.execute("""
        CREATE TABLE creators (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
            name TEXT UNIQUE NOT NULL,
            slug TEXT UNIQUE NOT NULL
        );
    """)

    op.execute("""
        CREATE TABLE semantic_labels (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
            label TEXT NOT NULL,
            wikidata_id TEXT,
            description TEXT,
            CONSTRAINT unique_wikidata_id UNIQUE (wikidata_id)
        );
    """)

    # Games keep their publisher loosely: deleting the publisher unlinks the game
    op.execute("""
        CREATE TABLE games (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
            name TEXT NOT NULL,
            slug TEXT NOT NULL UNIQUE,
            description TEXT,
            publisher_id UUID REFERENCES publishers(id) ON DELETE SET NULL,
            number_of_players TEXT,
            in_language TEXT CHECK (in_language IN ('fi', 'sv', 'en')),
            url TEXT,
            license TEXT,
            image_url TEXT
        );
    """)

    # Products hold their publisher strictly: a publisher with products cannot be deleted
    op.execute("""
        CREATE TABLE products (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
            title TEXT NOT NULL,
            slug TEXT UNIQUE NOT NULL,
            publisher_id UUID REFERENCES publishers(id) ON DELETE RESTRICT,
            game_id UUID REFERENCES games(id) ON DELETE SET NULL,
            product_type TEXT NOT NULL DEFAULT 'Other' CHECK (
                product_type IN ('Core Rulebook', 'Adventure', 'Supplement', 'Zine', 'Quickstart', 'Other')
            ),
            year INTEGER CHECK (year BETWEEN 1900 AND 2100),
            description TEXT,
            lang TEXT NOT NULL DEFAULT 'fi' CHECK (lang IN ('fi', 'sv', 'en'))
        );
    """)

    op.execute("""
        CREATE TABLE products_creators (
            product_id UUID NOT NULL REFERENCES products(id) ON DELETE CASCADE,
            creator_id UUID NOT NULL REFERENCES creators(id) ON DELETE CASCADE,
            role TEXT NOT NULL,
            PRIMARY KEY (product_id, creator_id, role)
        );
    """)

    op.execute("""
        CREATE TABLE games_creators (
            game_id UUID NOT NULL REFERENCES games(id) ON DELETE CASCADE,
            creator_id UUID NOT NULL REFERENCES creators(id) ON DELETE CASCADE,
            role TEXT NOT NULL,
            PRIMARY KEY (game_id, creator_id, role)
        );
    """)

    # idx is display order, not unique
    op.execute("""
        CREATE TABLE product_semantic_labels (
            product_id UUID NOT NULL REFERENCES products(id) ON DELETE CASCADE,
            label_id UUID NOT NULL REFERENCES semantic_labels(id) ON DELETE CASCADE,
            idx INTEGER DEFAULT 0,
            PRIMARY KEY (product_id, label_id)
        );
    """)

    op.execute("""
        CREATE TABLE game_semantic_labels (
            game_id UUID NOT NULL REFERENCES games(id) ON DELETE CASCADE,
            label_id UUID NOT NULL REFERENCES semantic_labels(id) ON DELETE CASCADE,
            idx INTEGER DEFAULT 0,
            PRIMARY KEY (game_id, label_id)
        );
    """)

    # Exactly one of based_on_game_id / based_on_url per row
    op.execute("""
        CREATE TABLE game_based_on (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
            game_id UUID NOT NULL REFERENCES games(id) ON DELETE CASCADE,
            based_on_game_id UUID REFERENCES games(id) ON DELETE CASCADE,
            based_on_url TEXT,
            label TEXT NOT NULL,
            CONSTRAINT check_exactly_one_source CHECK (
                (based_on_game_id IS NOT NULL AND based_on_url IS NULL)
                OR (based_on_game_id IS NULL AND based_on_url IS NOT NULL)
            )
        );
    """)

    op.execute("""
        CREATE TABLE product_isbns (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
            product_id UUID NOT NULL REFERENCES products(id) ON DELETE CASCADE,
            isbn TEXT NOT NULL,
            label TEXT
        );
    """)

    op.execute("CREATE INDEX idx_games_publisher ON games(publisher_id);")
    op.execute("CREATE INDEX idx_products_publisher ON products(publisher_id);")
    op.execute("CREATE INDEX idx_products_game ON products(game_id);")
    op.execute("CREATE INDEX idx_products_creators_creator ON products_creators(creator_id);")
    op.execute("CREATE INDEX idx_games_creators_game ON games_creators(game_id);")
    op.execute("CREATE INDEX idx_games_creators_creator ON games_creators(creator_id);")
    op.execute("CREATE INDEX idx_product_semantic_labels_label ON product_semantic_labels(label_id);")
    op.execute("CREATE INDEX idx_game_semantic_labels_label ON game_semantic_labels(label_id);")
    op.execute("CREATE INDEX idx_game_based_on_game ON game_based_on(game_id);")
    op.execute("CREATE INDEX idx_game_based_on_internal ON game_based_on(based_on_game_id);")
    op.execute("CREATE INDEX idx_product_isbns_product ON product_isbns(product_id);")

    for table in CATALOG_TABLES:
        enable_admin_write_rls(table)


def downgrade():
    for table in reversed(CATALOG_TABLES):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE;")
