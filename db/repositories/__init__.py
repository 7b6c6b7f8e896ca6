"""Repository layer for the AI action gateway.

Provides CRUD and lifecycle methods for the gateway's tables:
- actions: get_by_id, create_action, claim_for_execution, mark_finished,
           approve, requeue_failed, list_pending_approval, list_stuck
- conversations: get_by_id, create
- messages: record_outbound, list_for_conversation
- receipts: write_receipt, list_for_source, list_recent (insert/query only)
- content_jobs: create_job, get_by_id, update_status
- credentials: get_latest, store
"""
