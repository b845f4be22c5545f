from __future__ import annotations

import sqlite3

MAIN_AS_FARM_MESSAGE = "An account that is already a main account cannot be used as a farm account"
FARM_AS_MAIN_MESSAGE = "An account that is already a farm account cannot be used as a main account"


def upgrade(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    for trigger in (
        "check_farm_not_main",
        "check_farm_not_main_update",
        "check_main_not_farm",
        "check_main_not_farm_update",
    ):
        cur.execute(f"DROP TRIGGER IF EXISTS {trigger}")

    cur.execute(
        f"""
        CREATE TRIGGER check_farm_not_main
        BEFORE INSERT ON AccountLinks
        FOR EACH ROW
        WHEN EXISTS (SELECT 1 FROM AccountLinks WHERE MainGovernorId = NEW.FarmGovernorId)
        BEGIN
            SELECT RAISE(ABORT, '{MAIN_AS_FARM_MESSAGE}');
        END
        """
    )
    cur.execute(
        f"""
        CREATE TRIGGER check_farm_not_main_update
        BEFORE UPDATE OF FarmGovernorId ON AccountLinks
        FOR EACH ROW
        WHEN EXISTS (
            SELECT 1 FROM AccountLinks
            WHERE MainGovernorId = NEW.FarmGovernorId AND Id != OLD.Id
        )
        BEGIN
            SELECT RAISE(ABORT, '{MAIN_AS_FARM_MESSAGE}');
        END
        """
    )
    cur.execute(
        f"""
        CREATE TRIGGER check_main_not_farm
        BEFORE INSERT ON AccountLinks
        FOR EACH ROW
        WHEN EXISTS (SELECT 1 FROM AccountLinks WHERE FarmGovernorId = NEW.MainGovernorId)
        BEGIN
            SELECT RAISE(ABORT, '{FARM_AS_MAIN_MESSAGE}');
        END
        """
    )
    cur.execute(
        f"""
        CREATE TRIGGER check_main_not_farm_update
        BEFORE UPDATE OF MainGovernorId ON AccountLinks
        FOR EACH ROW
        WHEN EXISTS (
            SELECT 1 FROM AccountLinks
            WHERE FarmGovernorId = NEW.MainGovernorId AND Id != OLD.Id
        )
        BEGIN
            SELECT RAISE(ABORT, '{FARM_AS_MAIN_MESSAGE}');
        END
        """
    )
    conn.commit()


def downgrade(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    for trigger in (
        "check_farm_not_main",
        "check_farm_not_main_update",
        "check_main_not_farm",
        "check_main_not_farm_update",
    ):
        cur.execute(f"DROP TRIGGER IF EXISTS {trigger}")
    conn.commit()
