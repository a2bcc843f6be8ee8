import asyncio
import sys

import asyncpg

from src.config import settings
from src.infra.database import init_db, close_db


async def create_db() -> None:
    db_name = settings.database.DB_NAME

    # Подключаемся к служебной БД postgres, чтобы создать рабочую
    sys_conn = await asyncpg.connect(
        user=settings.database.DB_USER,
        password=settings.database.DB_PASSWORD,
        host=settings.database.DB_HOST,
        port=settings.database.DB_PORT,
        database="postgres",
    )
    try:
        exists = await sys_conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", db_name)
        if not exists:
            print(f"Creating database {db_name}...")
            await sys_conn.execute(f'CREATE DATABASE "{db_name}"')
            print("Database created.")
        else:
            print(f"Database {db_name} already exists.")
    finally:
        await sys_conn.close()

    # Схемы users_schema и ratings_schema
    await init_db(apply_schema=True)
    await close_db()
    print("Schema applied.")


if __name__ == "__main__":
    try:
        asyncio.run(create_db())
    except (OSError, asyncpg.PostgresError) as e:
        print(f"Error: {e}")
        sys.exit(1)
