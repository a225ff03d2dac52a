from cabinstay.modules.date_changes.workflow import DateChangeRequestWorkflow

__all__ = ["DateChangeRequestWorkflow"]
