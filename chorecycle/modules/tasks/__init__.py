"""Tasks module: recurring chore definitions and their dated instances."""

from chorecycle.core.module import ScheduledJob


class TasksModule:
    """Tasks module for household chore scheduling.

    Provides:
    - Task definition storage (recurrence rule, points, approval flag)
    - Instance materialization, regeneration and assignee propagation
    - Instance lifecycle state machine
    - Daily horizon rollover job
    """

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "tasks"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Recurring household chores materialized into dated, assignable instances"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "task_definitions": """CREATE TABLE IF NOT EXISTS task_definitions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        title TEXT NOT NULL,
        description TEXT,
        category_id TEXT,
        points INTEGER NOT NULL DEFAULT 10 CHECK (points >= 0),
        due_time TEXT,
        require_approval INTEGER NOT NULL DEFAULT 0,
        active INTEGER NOT NULL DEFAULT 1,
        recurrence_type TEXT NOT NULL DEFAULT 'once',
        recurrence_interval INTEGER NOT NULL DEFAULT 1 CHECK (recurrence_interval >= 1),
        start_date TEXT NOT NULL,
        end_date TEXT,
        default_assignee TEXT
    )""",
            "task_instances": """CREATE TABLE IF NOT EXISTS task_instances (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        definition_id INTEGER NOT NULL REFERENCES task_definitions(id) ON DELETE CASCADE,
        due_date TEXT NOT NULL,
        assignee TEXT,
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'completed', 'pending_approval', 'approved', 'rejected', 'skipped')),
        completed_by TEXT,
        completed_at TEXT,
        completion_notes TEXT,
        points_awarded INTEGER,
        approved_by TEXT,
        approved_at TEXT,
        rejection_reason TEXT,
        UNIQUE(definition_id, due_date)
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_task_definitions_active ON task_definitions (active)",
            "CREATE INDEX IF NOT EXISTS idx_task_instances_due_date ON task_instances (due_date)",
            "CREATE INDEX IF NOT EXISTS idx_task_instances_assignee ON task_instances (assignee, due_date, status)",
            "CREATE INDEX IF NOT EXISTS idx_task_instances_status ON task_instances (definition_id, status)",
        ]

    def get_scheduled_jobs(self) -> list[ScheduledJob]:
        """Return scheduled jobs for this module."""
        import chorecycle.modules.tasks.scheduler_jobs

        return chorecycle.modules.tasks.scheduler_jobs.get_scheduled_jobs()
