"""Multi-step import workflows (SAP wizard state machine and its terminal driver)."""
