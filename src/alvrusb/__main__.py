"""Run the supervisor: ``python -m alvrusb``."""

from alvrusb.supervisor.worker import main

main()
