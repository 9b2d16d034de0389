"""
=============================================================================
DATABASE.PY — Conexión a la Base de Datos
=============================================================================
Configura el engine, las sesiones y la clase Base de SQLAlchemy.

En local: SQLite (archivo rachaclub.db)
En producción: PostgreSQL (variable de entorno DATABASE_URL)

Todas las fechas de check-in se guardan como DATE (sin hora) y se
calculan siempre en UTC. Ver streaks.py.
"""

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

# ─────────────────────────────────────────────────────────────────────────────
# CONEXIÓN
# ─────────────────────────────────────────────────────────────────────────────

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./rachaclub.db")

# Los proveedores suelen dar "postgres://", pero usamos psycopg (v3)
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+psycopg://", 1)
elif DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+psycopg://", 1)

# ─────────────────────────────────────────────────────────────────────────────
# ENGINE
# ─────────────────────────────────────────────────────────────────────────────
# check_same_thread=False → solo SQLite (FastAPI atiende en varios hilos)

engine_args = {}
if DATABASE_URL.startswith("sqlite"):
    engine_args["connect_args"] = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, echo=False, **engine_args)

# ─────────────────────────────────────────────────────────────────────────────
# SESSION
# ─────────────────────────────────────────────────────────────────────────────
# autocommit=False → cada operación de negocio decide cuándo hace commit.
# Así un check-in y el recálculo de su racha van en la misma transacción.

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Dependencia de FastAPI: abre una sesión por petición y la cierra al final.

      @app.get("/algo")
      def mi_endpoint(db: Session = Depends(get_db)):
          ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Crea las tablas que falten. Se llama al arrancar la aplicación."""
    # Importar los modelos registra sus tablas en Base.metadata
    import models  # noqa: F401
    Base.metadata.create_all(bind=engine)
