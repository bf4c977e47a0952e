"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskDraft, Reminder, Priority)
- lifecycle.py: Active/Archived/Deleted transitions + post-mutation ordering
- reminder_scheduler.py: one asyncio timer per task, rebuilt on every change
- gestures.py: swipe commit/cancel policy for task rows
"""
