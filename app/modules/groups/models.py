# Supabase tables: categories, sharing_groups, group_members
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

categories:
- id: uuid (primary key)
- name: text (not null)
- icon: text (not null)
- description: text (nullable)
- is_active: boolean (default: true)
- created_at: timestamp (default: now())

sharing_groups:
- id: uuid (primary key)
- title: text (not null)
- description: text (nullable)
- category_id: uuid (foreign key to categories.id, not null)
- creator_id: uuid (foreign key to profiles.id, not null)
- min_members: integer (not null, default: 2)
- max_members: integer (not null)
- current_members: integer (not null, default: 1)
- price_per_person: numeric (not null, > 0)
- currency: text (not null, default: 'THB')
- billing_cycle: text (not null, default: 'monthly')
- status: text (not null, default: 'active') - values: active, completed, cancelled, expired
- escrow_status: text (not null, default: 'pending') - values: pending, funded, released, refunded
- line_group_url: text (nullable)
- subscription_details: jsonb (nullable)
- expires_at: timestamp (not null)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
- check (current_members between 0 and max_members)

group_members:
- id: uuid (primary key)
- group_id: uuid (foreign key to sharing_groups.id, not null)
- user_id: uuid (foreign key to profiles.id, not null)
- status: text (not null, default: 'pending') - values: pending, approved, rejected, left
- payment_status: text (not null, default: 'pending') - values: pending, paid, refunded
- joined_at: timestamp (default: now())

current_members counts approved rows and only changes through conditional
updates on its previous value (see GroupService._change_member_count).
"""
