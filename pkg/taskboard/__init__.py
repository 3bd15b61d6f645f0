# Task board core: container partitioning, transfers, subtask progress, persistence sync
#
# Components:
#   schema.py      - Data model (Task, ContainerKey, Priority, Assignee)
#   store.py       - In-memory task store and its four container lists
#   classifier.py  - Container identifier <-> list lookup
#   transfer.py    - Drag-drop and category-button moves
#   progress.py    - Subtask progress and checklist projection
#   persistence.py - Flush/load against a key-value backend (SQLite, remote, memory)
#   controller.py  - Sequences mutate -> flush -> board_changed
#   projection.py  - Pure board snapshot for renderers
#   config.py      - YAML + environment configuration
