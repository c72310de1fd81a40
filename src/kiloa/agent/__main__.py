"""Run the reporting agent: ``python -m kiloa.agent``."""

from kiloa.agent.runner import main

main()
