"""Workshop Timeclock package.

Organized by feature modules (presence, breaks, work, performance, ...)
with a thin Flask controller layer over service/repository layers. The
trackers in ``presence``, ``breaks`` and ``work`` are the only code that
changes an employee's timeline.
"""
