import os

# База данных: по умолчанию SQLite файл рядом с приложением
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./fitchallenge.db")

# Сроки жизни сессий и приглашений
SESSION_TTL_DAYS = int(os.getenv("SESSION_TTL_DAYS", 15))
INVITATION_TTL_DAYS = int(os.getenv("INVITATION_TTL_DAYS", 7))

# Супер-админ, создаваемый при первом запуске
SUPER_ADMIN_EMAIL = os.getenv("SUPER_ADMIN_EMAIL", "admin@fitchallenge.com")
SUPER_ADMIN_PASSWORD = os.getenv("SUPER_ADMIN_PASSWORD", "SuperAdmin123!")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", 8000))
