"""
Database schema definitions for the photogallery application.

One DuckDB file holds gallery profiles, the generic photos table shared by
all four categories, and guestbook messages. ``tags`` and ``extra`` are JSON
encoded text columns.
"""

USERS_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    email TEXT NOT NULL UNIQUE,
    display_name TEXT,
    avatar_url TEXT,
    bio TEXT,
    location TEXT,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

PHOTOS_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS photos (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    category TEXT NOT NULL CHECK (category IN ('travel', 'selfie', 'festival', 'daily')),
    title TEXT NOT NULL,
    description TEXT,
    image_url TEXT NOT NULL,
    storage_path TEXT,
    tags TEXT NOT NULL DEFAULT '[]',
    location TEXT,
    mood TEXT,
    extra TEXT NOT NULL DEFAULT '{}',
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

MESSAGES_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS messages (
    id TEXT PRIMARY KEY,
    gallery_owner_id TEXT NOT NULL,
    name TEXT NOT NULL,
    message TEXT NOT NULL,
    color TEXT NOT NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

TABLE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_photos_user_id ON photos(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_photos_user_category ON photos(user_id, category);",
    "CREATE INDEX IF NOT EXISTS idx_photos_created_at ON photos(created_at);",
    "CREATE INDEX IF NOT EXISTS idx_messages_owner ON messages(gallery_owner_id);",
]

REQUIRED_COLUMNS = {
    "users": {"id", "username", "email", "display_name", "avatar_url", "bio", "location", "created_at", "updated_at"},
    "photos": {
        "id",
        "user_id",
        "category",
        "title",
        "description",
        "image_url",
        "storage_path",
        "tags",
        "location",
        "mood",
        "extra",
        "created_at",
        "updated_at",
    },
    "messages": {"id", "gallery_owner_id", "name", "message", "color", "created_at"},
}

TABLE_SCHEMAS = {
    "users": USERS_TABLE_SCHEMA,
    "photos": PHOTOS_TABLE_SCHEMA,
    "messages": MESSAGES_TABLE_SCHEMA,
}


def get_schema_statements() -> list[str]:
    """
    Get all database schema creation statements.

    Returns:
        List of SQL statements to create tables and indexes
    """
    return list(TABLE_SCHEMAS.values()) + TABLE_INDEXES


def validate_schema_compatibility() -> bool:
    """
    Check that every column the models use is declared in the table schemas.

    Returns:
        True if schema is compatible, False otherwise
    """
    for table, columns in REQUIRED_COLUMNS.items():
        schema_lower = TABLE_SCHEMAS[table].lower()
        for column in columns:
            if f"\n    {column} " not in schema_lower:
                return False
    return True
