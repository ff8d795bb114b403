"""
Константы правил оповещений
"""

# Терминальные статусы задач (сравнение без учета регистра)
TERMINAL_TASK_STATUSES = frozenset({"completed", "done", "closed", "resolved", "verified"})

# Статусы истории, засчитываемые на 100%
DONE_STORY_STATUSES = frozenset({"done", "completed"})

# Задача считается выполненной только в этом статусе
COMPLETED_TASK_STATUS = "completed"

# Просроченные задачи
OVERDUE_ALERT_DAYS = 2
ESCALATION_DAYS = 5
SPRINT_OVERDUE_RATIO_THRESHOLD = 0.20
SPRINT_ALERT_COOLDOWN_HOURS = 24

# Загрузка
HOURS_PER_STORY_POINT = 2
WEEKLY_CAPACITY_HOURS = 40
OVERLOAD_THRESHOLD_PERCENT = 120.0
UNDERLOAD_THRESHOLD_RATIO = 0.70
DEFAULT_WORKING_HOURS_PER_DAY = 8
WORKING_DAYS_PER_WEEK = 5

# Переключение контекста
CONTEXT_SWITCH_WINDOW_DAYS = 7
CONTEXT_SWITCH_PROJECT_THRESHOLD = 5
CONTEXT_SWITCH_REPEAT_THRESHOLD = 2

# Табели
REQUIRED_DAILY_MINUTES = 480
COMPLIANCE_CUTOFF_HOUR = 18
REST_WEEKDAY = 6  # воскресенье, datetime.weekday()
PENDING_TIMESHEET_DAYS = 7
PENDING_TIMESHEET_STATUSES = ("pending_pm", "pending_admin")
PENDING_PM_STATUS = "pending_pm"
REWORK_WORK_TYPE = "rework"

# Поощрение за дисциплину
REWARD_VIOLATION_LOOKBACK_DAYS = 30
REWARD_COOLDOWN_DAYS = 28

# Скорость спринтов
LOW_VELOCITY_THRESHOLD_PERCENT = 85.0

# Переделки
REWORK_LOOKBACK_DAYS = 7
REWORK_ALARM_PERCENT = 15.0
HIGH_REWORK_ALARM_PERCENT = 25.0

# Переработка по плану недели
OVERWORK_WEEKLY_HOURS = 66.0
ACTIVE_WORK_TASK_STATUSES = frozenset({"in_progress", "review"})

# Блокировка табеля за повторные пропуски
LOCKOUT_WINDOW_DAYS = 7
LOCKOUT_MISSING_THRESHOLD = 3
SUBMITTED_DAY_STATUSES = ("submitted", "approved")

# Фактически отработанное время
DEFAULT_WORKING_DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday")
WORKING_DAYS_LOOKBACK_LIMIT = 60
LOW_LOGGED_HOURS_DAYS = 3
IDLE_TIME_THRESHOLD_PERCENT = 25.0
UNDER_UTILIZATION_DAYS = 30
UNDER_UTILIZATION_THRESHOLD_PERCENT = 60.0

# Загрузка команды проекта
ACTIVE_PROJECT_STATUSES = ("active", "in_progress")
TEAM_CRITICAL_UTILIZATION_DAYS = 30
TEAM_CRITICAL_UTILIZATION_PERCENT = 65.0
TEAM_LOW_UTILIZATION_DAYS = 7
TEAM_LOW_UTILIZATION_PERCENT = 75.0

# Прогноз срока проекта
COMPLETED_PROJECT_STATUS = "completed"
DEADLINE_RISK_THRESHOLD_DAYS = 21
SPRINT_LENGTH_DAYS = 14
DEADLINE_VELOCITY_SAMPLE = 3

# Отправитель системных уведомлений
SYSTEM_SENDER_NAME = "System"
DEFAULT_TENANT_ID = "default"
