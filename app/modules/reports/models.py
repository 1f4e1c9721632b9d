# Supabase tables: reports
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

reports:
- id: uuid (primary key)
- reporter_id: uuid (foreign key to profiles.id, not null)
- reported_user_id: uuid (foreign key to profiles.id, nullable)
- reported_group_id: uuid (foreign key to sharing_groups.id, nullable)
- reason: text (not null)
- description: text (nullable)
- status: text (not null, default: 'pending') - values: pending, under_review, resolved, dismissed
- admin_notes: text (nullable)
- created_at: timestamp (default: now())
- resolved_at: timestamp (nullable)

Exactly one of reported_user_id / reported_group_id is set.
"""
