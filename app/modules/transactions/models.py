# Supabase tables: transactions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

transactions:
- id: uuid (primary key)
- group_id: uuid (foreign key to sharing_groups.id, not null)
- user_id: uuid (foreign key to profiles.id, not null)
- type: text (not null) - values: payment, refund, escrow_release
- amount: numeric (not null)
- currency: text (not null, default: 'THB')
- payment_method: text (nullable) - values: promptpay, stripe, bank_transfer
- payment_reference: text (nullable)
- status: text (not null, default: 'pending') - values: pending, completed, failed, cancelled
- metadata: jsonb (nullable)
- created_at: timestamp (default: now())
- completed_at: timestamp (nullable)

Rows are never deleted; only status/completed_at change after insert.
"""
