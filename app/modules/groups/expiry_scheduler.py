import asyncio
import logging
from app.config import settings
from app.database.supabase_client import get_service_supabase
from app.modules.groups.service import GroupService
from app.modules.transactions.service import TransactionService

logger = logging.getLogger(__name__)


async def check_and_expire_groups():
    """Expire active groups past their deadline and refund their paid members."""
    try:
        supabase = get_service_supabase()
        group_service = GroupService(supabase)
        transaction_service = TransactionService(supabase)
        expired_groups = group_service.expire_overdue_groups()
        if not expired_groups:
            logger.debug("No overdue groups found")
            return
        logger.info(f"Expired {len(expired_groups)} overdue group(s)")
        for group in expired_groups:
            try:
                if group.escrow_status in ("pending", "funded"):
                    group_service.set_escrow_status(group.id, "refunded")
                transaction_service.refund_group(group.id)
            except Exception as e:
                logger.error(f"Error refunding expired group {group.id}: {str(e)}")
    except Exception as e:
        logger.error(f"Error in group expiry sweep: {str(e)}")


async def expiry_scheduler_loop():
    """Background task that periodically expires overdue groups"""
    while True:
        try:
            await check_and_expire_groups()
        except Exception as e:
            logger.error(f"Error in group expiry loop: {str(e)}")

        await asyncio.sleep(settings.group_expiry_sweep_interval)
