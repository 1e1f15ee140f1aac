# taskflow/seed.py

import logging
from datetime import datetime

from taskflow.auth.auth_router import hash_password
from taskflow.storage import Storage

logger = logging.getLogger("taskflow.seed")

_AVATAR = "https://images.unsplash.com/photo-{}?ixlib=rb-1.2.1&auto=format&fit=facearea&facepad=2&w=256&h=256&q=80"

SAMPLE_USERS = [
    {"username": "alex", "display_name": "Alex Morgan", "role": "admin", "photo": "1472099645785-5658abf4ff4e"},
    {"username": "sarah", "display_name": "Sarah Chen", "role": "user", "photo": "1494790108377-be9c29b29330"},
    {"username": "marcus", "display_name": "Marcus Kim", "role": "user", "photo": "1570295999919-56ceb5ecca61"},
    {"username": "jessica", "display_name": "Jessica Lee", "role": "user", "photo": "1534528741775-53994a69daeb"},
]

# (title, description, status, priority, assignee, start, due, position)
SAMPLE_TASKS = [
    ("Website redesign",
     "Update the homepage layout with the new design system. Focus on improving the hero section "
     "and navigation. Implement responsive design for all screen sizes.",
     "in_progress", "high", 2, "2023-09-15", "2023-09-23", 1),
    ("Create user onboarding flow",
     "Design new user tutorial and onboarding experience for first-time users.",
     "todo", "medium", 1, "2023-09-25", "2023-10-05", 1),
    ("API documentation",
     "Write API endpoints documentation for developers.",
     "completed", "low", 3, "2023-09-10", "2023-09-18", 1),
    ("Performance optimization",
     "Improve loading times and application performance.",
     "in_progress", "high", 4, "2023-09-20", "2023-09-30", 2),
    ("Customer feedback survey",
     "Create end-user feedback form to gather insights.",
     "todo", "low", 2, "2023-10-01", "2023-10-12", 2),
    ("Mobile app navigation",
     "Review updated navigation flow for the mobile application.",
     "in_review", "medium", 3, "2023-09-25", "2023-10-02", 1),
]

SAMPLE_SUBTASKS = [
    (1, "Create wireframes", True),
    (1, "Implement new navigation", False),
    (1, "Update hero section", False),
    (1, "Test responsive design", False),
    (3, "Document authentication endpoints", True),
    (3, "Create API examples", True),
]

SAMPLE_COMMENTS = [
    (1, 3, "I've reviewed the wireframes. Looking good, but we might need to adjust the mobile "
           "navigation to improve accessibility."),
    (1, 2, "I'll make those adjustments today. We should be on track to complete this by the due date."),
]


def seed_sample_data(storage: Storage) -> bool:
    """
    Fill an empty store with the demo board (users, workspace 1, tasks).
    Written straight to storage: seeding produces no notifications.
    Returns False when there is already data.
    """
    if storage.get_users() or storage.get_workspaces():
        return False

    for u in SAMPLE_USERS:
        storage.create_user(
            {
                "username": u["username"],
                "password": hash_password("password"),
                "display_name": u["display_name"],
                "avatar_url": _AVATAR.format(u["photo"]),
                "role": u["role"],
            }
        )

    workspace = storage.create_workspace({"name": "Main Project", "description": "Primary project workspace"})

    task_ids = []
    for title, description, status, priority, assignee, start, due, position in SAMPLE_TASKS:
        task = storage.create_task(
            {
                "title": title,
                "description": description,
                "status": status,
                "priority": priority,
                "assignee_id": assignee,
                "workspace_id": workspace.id,
                "start_date": datetime.fromisoformat(start),
                "due_date": datetime.fromisoformat(due),
                "completed": status == "completed",
                "position": position,
                "task_type": "adhoc",
            }
        )
        task_ids.append(task.id)

    for task_no, title, completed in SAMPLE_SUBTASKS:
        storage.create_subtask({"task_id": task_ids[task_no - 1], "title": title, "completed": completed})

    for task_no, user_id, content in SAMPLE_COMMENTS:
        storage.create_comment({"task_id": task_ids[task_no - 1], "user_id": user_id, "content": content})

    logger.info("sample_data_seeded", extra={"tasks": len(task_ids), "workspace_id": workspace.id})
    return True
