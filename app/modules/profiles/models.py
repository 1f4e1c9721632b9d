# Supabase tables: profiles, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id)
- line_user_id: text (unique, nullable) - LINE userId of the account
- display_name: text (nullable)
- avatar_url: text (nullable)
- phone: text (nullable)
- email: text (nullable)
- trust_level: smallint (not null, default: 1, check 1..5)
- trust_score: integer (not null, default: 0)
- is_verified: boolean (not null, default: false)
- verification_data: jsonb (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

Profiles are created at first LINE login and never hard-deleted.
trust_score/trust_level are only written by apply_trust_event() and
recompute_trust_score() (see app/database/functions.sql).
"""
