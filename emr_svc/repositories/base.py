"""
Base database connection, schema initialization and row helpers.

SQLite is used in WAL mode with a busy timeout and foreign keys enabled.
Child tables declare ON DELETE CASCADE so that deleting a patient, task or
clinic removes its dependent rows in the same statement.

IMPORTANT: Database instantiation should be done through the DI layer.
Use core.dependencies.get_database() instead of instantiating directly.
"""
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from core.config import DATABASE_PATH, DATABASE_BUSY_TIMEOUT

logger = logging.getLogger(__name__)


SCHEMA_STATEMENTS = (
    # ------------------------------------------------------------------ clinics
    """
    CREATE TABLE IF NOT EXISTS clinics (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        address TEXT,
        phone TEXT,
        email TEXT,
        type TEXT NOT NULL DEFAULT 'single' CHECK (type IN ('group', 'single')),
        group_npi TEXT,
        tax_id TEXT,
        time_zone TEXT NOT NULL DEFAULT 'America/New_York',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS clinic_settings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        clinic_id INTEGER NOT NULL UNIQUE REFERENCES clinics(id) ON DELETE CASCADE,
        practice_logo TEXT,
        primary_color TEXT NOT NULL DEFAULT '#0066cc',
        enable_sms INTEGER NOT NULL DEFAULT 1,
        enable_voice INTEGER NOT NULL DEFAULT 0,
        reminder_hours INTEGER NOT NULL DEFAULT 24,
        reminder_minutes INTEGER NOT NULL DEFAULT 0,
        accepted_insurances TEXT NOT NULL DEFAULT '[]',
        enable_online_payments INTEGER NOT NULL DEFAULT 0,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS clinic_locations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        clinic_id INTEGER NOT NULL REFERENCES clinics(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        address TEXT,
        phone TEXT,
        hours TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS clinic_location_services (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        location_id INTEGER NOT NULL REFERENCES clinic_locations(id) ON DELETE CASCADE,
        service_name TEXT NOT NULL,
        service_category TEXT,
        description TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS clinic_location_schedules (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        location_id INTEGER NOT NULL REFERENCES clinic_locations(id) ON DELETE CASCADE,
        schedule_name TEXT NOT NULL,
        weekly_schedule TEXT NOT NULL,
        time_zone TEXT NOT NULL DEFAULT 'America/New_York',
        effective_from TEXT NOT NULL,
        effective_to TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        notes TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS medical_specialties (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        description TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS clinic_specialties (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        clinic_id INTEGER NOT NULL REFERENCES clinics(id) ON DELETE CASCADE,
        specialty_id INTEGER NOT NULL REFERENCES medical_specialties(id) ON DELETE CASCADE,
        is_primary INTEGER NOT NULL DEFAULT 0,
        notes TEXT,
        UNIQUE (clinic_id, specialty_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS insurance_providers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        payer_id TEXT,
        phone TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS clinic_insurances (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        clinic_id INTEGER NOT NULL REFERENCES clinics(id) ON DELETE CASCADE,
        provider_id INTEGER NOT NULL REFERENCES insurance_providers(id) ON DELETE CASCADE,
        notes TEXT,
        UNIQUE (clinic_id, provider_id)
    )
    """,
    # ------------------------------------------------------- access control
    """
    CREATE TABLE IF NOT EXISTS roles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        description TEXT,
        is_practice_role INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS modules (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        description TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS operations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        description TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS module_operations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        module_id INTEGER NOT NULL REFERENCES modules(id) ON DELETE CASCADE,
        operation_id INTEGER NOT NULL REFERENCES operations(id) ON DELETE CASCADE,
        UNIQUE (module_id, operation_id)
    )
    """,
    # ------------------------------------------------------------------ users
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        user_type TEXT NOT NULL,
        clinic_id INTEGER REFERENCES clinics(id) ON DELETE SET NULL,
        role_id INTEGER REFERENCES roles(id) ON DELETE SET NULL,
        first_name TEXT,
        last_name TEXT,
        phone TEXT,
        status TEXT NOT NULL DEFAULT 'active',
        last_login_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS role_permissions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        role_id INTEGER NOT NULL REFERENCES roles(id) ON DELETE CASCADE,
        module_operation_id INTEGER NOT NULL REFERENCES module_operations(id) ON DELETE CASCADE,
        UNIQUE (role_id, module_operation_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_access (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        module_operation_id INTEGER NOT NULL REFERENCES module_operations(id) ON DELETE CASCADE,
        UNIQUE (user_id, module_operation_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_locations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        clinic_id INTEGER NOT NULL REFERENCES clinics(id) ON DELETE CASCADE,
        location_id INTEGER NOT NULL REFERENCES clinic_locations(id) ON DELETE CASCADE,
        is_primary INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'inactive', 'transferred')),
        notes TEXT,
        created_at TEXT NOT NULL,
        UNIQUE (user_id, location_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS password_reset_tokens (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        token TEXT NOT NULL UNIQUE,
        expires_at TEXT NOT NULL,
        used INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    )
    """,
    # ------------------------------------------------------- doctors & staff
    """
    CREATE TABLE IF NOT EXISTS doctors (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
        clinic_id INTEGER REFERENCES clinics(id) ON DELETE SET NULL,
        location_id INTEGER REFERENCES clinic_locations(id) ON DELETE SET NULL,
        specialty TEXT,
        license_number TEXT,
        status TEXT NOT NULL DEFAULT 'active',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS doctor_schedules (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        doctor_id INTEGER NOT NULL REFERENCES doctors(id) ON DELETE CASCADE,
        day_of_week INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6),
        start_time TEXT NOT NULL,
        end_time TEXT NOT NULL,
        break_start TEXT,
        break_end TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        notes TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS doctor_time_off (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        doctor_id INTEGER NOT NULL REFERENCES doctors(id) ON DELETE CASCADE,
        start_date TEXT NOT NULL,
        end_date TEXT NOT NULL,
        reason TEXT NOT NULL,
        is_approved INTEGER NOT NULL DEFAULT 0,
        notes TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS staff (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
        clinic_id INTEGER NOT NULL REFERENCES clinics(id) ON DELETE CASCADE,
        location_id INTEGER REFERENCES clinic_locations(id) ON DELETE SET NULL,
        employee_id TEXT NOT NULL UNIQUE,
        role_id INTEGER REFERENCES roles(id) ON DELETE SET NULL,
        department TEXT NOT NULL,
        employment_status TEXT NOT NULL DEFAULT 'Full-time',
        start_date TEXT,
        end_date TEXT,
        supervisor_id INTEGER REFERENCES staff(id) ON DELETE SET NULL,
        salary REAL,
        hourly_rate REAL,
        emergency_contact_name TEXT,
        emergency_contact_phone TEXT,
        emergency_contact_relation TEXT,
        address TEXT,
        date_of_birth TEXT,
        gender TEXT,
        notes TEXT,
        status TEXT NOT NULL DEFAULT 'active',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    # --------------------------------------------------------------- patients
    """
    CREATE TABLE IF NOT EXISTS patients (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
        clinic_id INTEGER REFERENCES clinics(id) ON DELETE SET NULL,
        medical_record_number TEXT NOT NULL UNIQUE,
        emr_number TEXT NOT NULL UNIQUE,
        status TEXT NOT NULL DEFAULT 'active',
        date_of_birth TEXT,
        gender TEXT,
        mobile_phone TEXT,
        home_phone TEXT,
        ssn TEXT,
        ethnicity TEXT,
        race TEXT,
        preferred_language TEXT NOT NULL DEFAULT 'English',
        street_address TEXT,
        city TEXT,
        state TEXT,
        zip_code TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS patient_vitals (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
        height TEXT,
        weight TEXT,
        blood_pressure TEXT,
        heart_rate TEXT,
        temperature TEXT,
        respiratory_rate TEXT,
        oxygen_saturation TEXT,
        recorded_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS patient_medical_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
        conditions TEXT,
        allergies TEXT,
        family_history TEXT,
        social_history TEXT,
        notes TEXT,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS patient_surgical_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
        procedure TEXT NOT NULL,
        surgery_date TEXT,
        surgeon TEXT,
        notes TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS patient_medications (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        dosage TEXT,
        frequency TEXT,
        start_date TEXT,
        end_date TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS patient_diagnostics (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
        test_name TEXT NOT NULL,
        result TEXT,
        test_date TEXT,
        notes TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS patient_insurance (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
        provider_name TEXT NOT NULL,
        policy_number TEXT,
        group_number TEXT,
        is_primary INTEGER NOT NULL DEFAULT 0,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS patient_clinic_notes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
        note TEXT NOT NULL,
        author_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS patient_prior_visits (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
        visit_date TEXT,
        reason TEXT,
        provider TEXT,
        notes TEXT,
        created_at TEXT NOT NULL
    )
    """,
    # ----------------------------------------------------------- appointments
    """
    CREATE TABLE IF NOT EXISTS appointments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        clinic_id INTEGER NOT NULL REFERENCES clinics(id) ON DELETE CASCADE,
        patient_id INTEGER NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
        doctor_id INTEGER NOT NULL REFERENCES doctors(id) ON DELETE CASCADE,
        location_id INTEGER REFERENCES clinic_locations(id) ON DELETE SET NULL,
        date TEXT NOT NULL,
        start_time TEXT NOT NULL,
        end_time TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'onsite' CHECK (type IN ('onsite', 'online')),
        status TEXT NOT NULL DEFAULT 'scheduled' CHECK (status IN ('scheduled', 'cancelled', 'completed')),
        notes TEXT,
        created_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_appointments_doctor_date ON appointments (doctor_id, date)",
    # ------------------------------------------------------------ user schedules
    """
    CREATE TABLE IF NOT EXISTS user_schedules (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        clinic_id INTEGER NOT NULL REFERENCES clinics(id) ON DELETE CASCADE,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        user_type TEXT NOT NULL,
        weekly_schedule TEXT NOT NULL,
        slot_duration INTEGER NOT NULL DEFAULT 30,
        is_active INTEGER NOT NULL DEFAULT 1,
        effective_from TEXT NOT NULL,
        effective_to TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    # ------------------------------------------------------------------ tasks
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT,
        status TEXT NOT NULL DEFAULT 'open'
            CHECK (status IN ('open', 'in_progress', 'completed', 'closed')),
        priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
        clinic_id INTEGER REFERENCES clinics(id) ON DELETE CASCADE,
        created_by INTEGER NOT NULL REFERENCES users(id),
        assigned_to INTEGER REFERENCES users(id) ON DELETE SET NULL,
        start_date TEXT,
        due_date TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS task_comments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        comment TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS task_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        action TEXT NOT NULL CHECK (action IN ('created', 'edited', 'status_changed')),
        field_name TEXT,
        old_value TEXT,
        new_value TEXT,
        changed_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS task_attachments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        original_name TEXT NOT NULL,
        stored_name TEXT NOT NULL UNIQUE,
        content_type TEXT NOT NULL,
        size INTEGER NOT NULL,
        uploaded_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
        created_at TEXT NOT NULL
    )
    """,
    # ------------------------------------------------------------------ forms
    """
    CREATE TABLE IF NOT EXISTS form_templates (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT,
        fields TEXT NOT NULL,
        clinic_id INTEGER REFERENCES clinics(id) ON DELETE CASCADE,
        created_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS form_submissions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        form_template_id INTEGER NOT NULL REFERENCES form_templates(id) ON DELETE CASCADE,
        "values" TEXT NOT NULL,
        user_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
        submitted_at TEXT NOT NULL
    )
    """,
)


class Database:
    """
    SQLite database connection manager.

    Features:
    - WAL mode for concurrent readers alongside a writer
    - Busy timeout to wait out lock contention
    - Foreign key constraints (and cascades) enabled on every connection
    - Rows returned as sqlite3.Row so repositories can map them by column name

    Usage:
        # Via dependency injection (recommended):
        from core.dependencies import get_database
        db = get_database()

        # Direct instantiation (for testing):
        db = Database(db_path="/tmp/test.db")
    """

    def __init__(self, db_path: Optional[str] = None, busy_timeout: Optional[int] = None):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file. Defaults to config DATABASE_PATH.
            busy_timeout: SQLite busy timeout in milliseconds. Defaults to config value.
        """
        self.db_path = db_path or DATABASE_PATH
        self.busy_timeout = busy_timeout if busy_timeout is not None else DATABASE_BUSY_TIMEOUT

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_db()

    def _configure_connection(self, conn: sqlite3.Connection) -> None:
        conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout}")
        conn.execute("PRAGMA foreign_keys = ON")
        conn.row_factory = sqlite3.Row

    def _init_db(self) -> None:
        """Create all tables and enable WAL mode if not already enabled."""
        conn = sqlite3.connect(self.db_path)
        self._configure_connection(conn)
        cursor = conn.cursor()

        # WAL mode persists in the database file, so this only needs to run once
        cursor.execute("PRAGMA journal_mode = WAL")
        result = cursor.fetchone()
        if result and result[0].lower() == "wal":
            logger.info(f"SQLite WAL mode enabled for {self.db_path}")
        else:
            logger.warning(f"Failed to enable WAL mode, current mode: {result[0] if result else None}")

        for statement in SCHEMA_STATEMENTS:
            cursor.execute(statement)

        conn.commit()
        conn.close()

        logger.info(
            f"Database initialized: {self.db_path} "
            f"(busy_timeout={self.busy_timeout}ms, tables={len(SCHEMA_STATEMENTS)})"
        )

    def get_connection(self) -> sqlite3.Connection:
        """
        Get a new database connection with concurrency settings.

        Returns:
            sqlite3.Connection: A new connection with foreign keys enabled,
                busy timeout set and sqlite3.Row as the row factory.
        """
        conn = sqlite3.connect(self.db_path)
        self._configure_connection(conn)
        return conn


# =============================================================================
# ROW MAPPING HELPERS
# =============================================================================

def row_to_dict(
    row: Optional[sqlite3.Row],
    bool_fields: Iterable[str] = (),
    json_fields: Iterable[str] = (),
) -> Optional[Dict[str, Any]]:
    """
    Convert a sqlite3.Row into a plain dict.

    Args:
        row: The row to convert, or None.
        bool_fields: Columns stored as 0/1 that should be returned as bool.
        json_fields: Columns stored as JSON text that should be decoded.

    Returns:
        The mapped dict, or None when ``row`` is None.
    """
    if row is None:
        return None
    data = dict(row)
    for name in bool_fields:
        if name in data and data[name] is not None:
            data[name] = bool(data[name])
    for name in json_fields:
        if data.get(name) is not None:
            data[name] = json.loads(data[name])
    return data


def to_json(value: Any) -> Optional[str]:
    """Serialize a JSON column value, passing None through."""
    return None if value is None else json.dumps(value)


def build_update(
    fields: Dict[str, Any],
    allowed: Iterable[str],
    json_columns: Iterable[str] = (),
) -> tuple:
    """
    Build the SET clause and parameters for a partial UPDATE.

    Only keys present in ``allowed`` are used, so column names never come
    from user input.

    Returns:
        Tuple of (set_clause, params). set_clause is empty if there is
        nothing to update.
    """
    json_columns = set(json_columns)
    columns = [name for name in allowed if name in fields]
    params = [
        to_json(fields[name]) if name in json_columns
        else (int(fields[name]) if isinstance(fields[name], bool) else fields[name])
        for name in columns
    ]
    set_clause = ", ".join(f'"{name}" = ?' for name in columns)
    return set_clause, params
