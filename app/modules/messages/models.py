# Supabase tables: messages
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

messages:
- id: uuid (primary key)
- group_id: uuid (foreign key to sharing_groups.id, not null)
- user_id: uuid (foreign key to profiles.id, not null)
- content: text (not null)
- message_type: text (not null, default: 'text') - values: text, image, file
- is_flagged: boolean (default: false)
- created_at: timestamp (default: now())
"""
