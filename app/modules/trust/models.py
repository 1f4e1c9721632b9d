# Supabase tables: trust_events
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

trust_events:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, not null)
- event_type: text (not null) - values: positive, negative, neutral
- reason: text (not null) - e.g. phone_verified, payment_completed, violation_reported
- score_change: integer (not null)
- reference_type: text (nullable) - e.g. group, transaction, verification, report
- reference_id: uuid (nullable)
- created_at: timestamp (default: now())

The table is append-only. Rows are written together with the profile score by
apply_trust_event() in one transaction; recompute_trust_score() rebuilds
profiles.trust_score from the ledger (see app/database/functions.sql).
"""
