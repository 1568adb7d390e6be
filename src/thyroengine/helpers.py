from .types import DoseSchedule, Hormone, HORMONES

def split_schedule_by_hormone(schedule: DoseSchedule) -> dict[Hormone, DoseSchedule]:
    """
    Partition a schedule into one sub-schedule per hormone.
    Every hormone gets an entry, empty when it has no doses.
    """
    return {hormone: schedule.for_hormone(hormone) for hormone in HORMONES}
