"""Root conftest: shared test configuration."""

import os

# Settings are cached on first import; fix them before anything imports pixnest
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("MEDIA_UPLOAD_BASE_DELAY_MS", "1")
os.environ.setdefault("CLOUDINARY_API_SECRET", "test-secret")
os.environ.setdefault("LOG_FORMAT", "text")
