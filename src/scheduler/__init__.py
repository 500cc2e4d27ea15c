"""
Scheduling core: interval math, recurrence, conflicts and the scheduler facade
"""
