# Supabase tables: verifications
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

verifications:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, not null)
- type: text (not null) - values: phone, id_card, promptpay, email
- data: jsonb (not null)
- status: text (not null, default: 'pending') - values: pending, approved, rejected
- verified_by: uuid (nullable) - reviewing super user
- documents: text[] (nullable) - storage paths of uploaded documents
- created_at: timestamp (default: now())
- verified_at: timestamp (nullable)
"""
