"""Taskiq task definitions.

Run the worker with:
    taskiq worker editorial_reminders.infra.tasks.broker:broker
"""
