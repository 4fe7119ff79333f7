"""Dependency injection singletons for LeadHub-Engine."""

from leadhub_engine.activity.service import ActivityService
from leadhub_engine.automation.evaluator import AutomationEvaluator
from leadhub_engine.automation.service import AutomationService
from leadhub_engine.billing.service import BillingService
from leadhub_engine.common.config import get_settings
from leadhub_engine.common.database import DatabaseManager
from leadhub_engine.common.tasks import TaskDispatcher
from leadhub_engine.credentials.service import CredentialService
from leadhub_engine.gateway.service import GatewayService
from leadhub_engine.linkpreview.service import LinkPreviewService
from leadhub_engine.monitor.service import MonitorService
from leadhub_engine.tenants.service import TenantService
from leadhub_engine.vault.crypto import Vault

_db: DatabaseManager | None = None
_vault: Vault | None = None
_tasks: TaskDispatcher | None = None
_tenants: TenantService | None = None
_billing: BillingService | None = None
_monitor: MonitorService | None = None
_automation: AutomationService | None = None
_evaluator: AutomationEvaluator | None = None
_credentials: CredentialService | None = None
_gateway: GatewayService | None = None
_activity: ActivityService | None = None
_link_preview: LinkPreviewService | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_vault() -> Vault:
    """Process-wide vault. Raises ConfigurationError without an encryption key."""
    global _vault
    if _vault is None:
        _vault = Vault(get_settings().encryption_key)
    return _vault


def get_task_dispatcher() -> TaskDispatcher:
    global _tasks
    if _tasks is None:
        _tasks = TaskDispatcher()
    return _tasks


def get_tenant_service() -> TenantService:
    global _tenants
    if _tenants is None:
        _tenants = TenantService()
    return _tenants


def get_billing_service() -> BillingService:
    global _billing
    if _billing is None:
        _billing = BillingService(get_settings(), get_vault())
    return _billing


def get_monitor_service() -> MonitorService:
    global _monitor
    if _monitor is None:
        _monitor = MonitorService(get_settings(), get_vault())
    return _monitor


def get_automation_service() -> AutomationService:
    global _automation
    if _automation is None:
        _automation = AutomationService(get_settings())
    return _automation


def get_automation_evaluator() -> AutomationEvaluator:
    global _evaluator
    if _evaluator is None:
        _evaluator = AutomationEvaluator(get_automation_service())
    return _evaluator


def get_credential_service() -> CredentialService:
    global _credentials
    if _credentials is None:
        _credentials = CredentialService(get_vault())
    return _credentials


def get_gateway_service() -> GatewayService:
    global _gateway
    if _gateway is None:
        _gateway = GatewayService(get_settings(), get_credential_service())
    return _gateway


def get_activity_service() -> ActivityService:
    global _activity
    if _activity is None:
        _activity = ActivityService()
    return _activity


def get_link_preview_service() -> LinkPreviewService:
    global _link_preview
    if _link_preview is None:
        _link_preview = LinkPreviewService(timeout=get_settings().link_preview_timeout)
    return _link_preview


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _vault, _tasks, _tenants, _billing, _monitor, _automation
    global _evaluator, _credentials, _gateway, _activity, _link_preview
    _db = None
    _vault = None
    _tasks = None
    _tenants = None
    _billing = None
    _monitor = None
    _automation = None
    _evaluator = None
    _credentials = None
    _gateway = None
    _activity = None
    _link_preview = None
