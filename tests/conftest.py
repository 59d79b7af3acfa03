import os

# Settings are read at import time, so the environment must be ready first
os.environ["JWT_SECRET"] = "test-only-secret-key-0123456789"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"
os.environ["ENABLE_EMAIL_VERIFICATION"] = "false"
os.environ["ADMIN_EMAILS"] = "boss@example.com"
