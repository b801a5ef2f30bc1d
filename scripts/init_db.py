#!/usr/bin/env python3
"""
Database initialization script
Creates all tables and optionally rebuilds the calibration snapshot
"""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Load .env file
from dotenv import load_dotenv
load_dotenv()

from backend.models import Base, engine, SessionLocal, init_db
from backend.services.resolution import rebuild_calibration
import logging
from sqlalchemy import text, inspect

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_database(drop_existing: bool = False):
    """
    Initialize database tables

    Args:
        drop_existing: If True, drops all tables first (DANGER: data loss!)
    """
    logger.info("🔧 Initializing PROPRED database...")

    if drop_existing:
        logger.warning("⚠️  Dropping all existing tables!")
        response = input("Are you sure? This will delete all tracked predictions. Type 'yes' to confirm: ")
        if response.lower() != 'yes':
            logger.info("Aborted.")
            return False

        Base.metadata.drop_all(bind=engine)
        logger.info("✅ Existing tables dropped")

    init_db()
    logger.info("✅ Database tables created successfully")

    inspector = inspect(engine)
    logger.info(f"📋 Tables: {', '.join(inspector.get_table_names())}")

    return True


def rebuild_snapshot():
    """Recompute the calibration snapshot from stored predictions."""
    db = SessionLocal()
    try:
        snapshot = rebuild_calibration(db)
        overall = snapshot["overall"]
        logger.info(
            f"✅ Calibration rebuilt: {overall['wins']}/{overall['total']} "
            f"across {len(snapshot['buckets'])} bands"
        )
    except Exception as e:
        logger.error(f"❌ Error rebuilding calibration: {e}")
        db.rollback()
    finally:
        db.close()


def check_connection():
    """Test database connection"""
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        db.close()
        logger.info("✅ Database connection successful")
        return True
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}")
        return False


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Initialize PROPRED database")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables (DANGER!)")
    parser.add_argument("--rebuild", action="store_true", help="Rebuild the calibration snapshot")
    parser.add_argument("--check", action="store_true", help="Only check connection")

    args = parser.parse_args()

    if args.check:
        check_connection()
    else:
        if check_connection():
            if init_database(drop_existing=args.drop) and args.rebuild:
                rebuild_snapshot()

            logger.info("🎉 Database initialization complete!")
        else:
            logger.error("Cannot initialize database - connection failed")
            sys.exit(1)
