from django.dispatch import Signal

# Sent after the transaction that changed a task commits.
# kwargs: task, event (a TaskHistory action type or 'ASSIGNED'), actor, previous_technician
task_transitioned = Signal()
