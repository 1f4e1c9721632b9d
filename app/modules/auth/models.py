# Supabase tables: auth.users, profiles, user_sessions, refresh_tokens
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
LINE users get a Supabase Auth account (auth.users) created through the admin API
with a synthesized e-mail: {line_user_id}@line.users.{product_name}.

profiles: see app/modules/profiles/models.py (row id == auth.users.id)

user_sessions:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, not null)
- provider: text (default: 'line')
- started_at: timestamp (default: now())
- ended_at: timestamp (nullable) - set on sign-out

refresh_tokens:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, not null)
- token_hash: text (unique, not null) - sha256 hex digest, the raw token is never stored
- expires_at: timestamp (not null)
- revoked_at: timestamp (nullable)
- created_at: timestamp (default: now())
"""
