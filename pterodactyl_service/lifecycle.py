"""
Order Lifecycle Adapter
=======================

Orchestrates order lifecycle events against the panel and the host.

Ties together:
- Remote panel client (servers, users)
- Inventory resolver (locations, stock)
- Host store (orders)
- Host billing engine (renewal and cancellation invoices)

Create flow:
1. Make sure the order has no server yet
2. Resolve the location and reserve stock
3. Find or create the client's panel account
4. Create the server with the package limits and egg environment
5. On any failure after step 2, give the stock back

Every operation returns an OperationResult. Errors raised by the panel or
by validation are converted at this boundary and never reach the host
as unhandled exceptions.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional
import secrets
import string
import logging

from .billing import BillingEngine, Payment, PaymentHandler, PaymentStatus
from .checkout import CheckoutFormBuilder
from .config import ServiceConfig
from .eggs import Egg, parse_egg
from .errors import (
    NotFoundError,
    RemoteApiError,
    RemoteNotFoundError,
    ServiceError,
    StateConflictError,
    ValidationError,
)
from .inventory import InventoryResolver
from .models import ExternalUser, Location, Order, OrderStatus, Package
from .panel import Allocation, BuildSpec, PanelServer, PterodactylClient
from .results import OperationResult
from .store import HostStore

logger = logging.getLogger(__name__)


MIN_RENEWAL_FREQUENCY = 1
MAX_RENEWAL_FREQUENCY = 12
MAX_CANCEL_REASON_LENGTH = 255
MIN_PASSWORD_LENGTH = 8
CANCELLATION_INVOICE_HOURS = 6

# Placeholders that need the server's allocation before they can be filled
ALLOCATION_PLACEHOLDERS = ("NODE_IP", "AUTO_PORT")


def _random_text(length: int = 10) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def _random_number(length: int = 6) -> str:
    return "".join(secrets.choice(string.digits) for _ in range(length))


def validate_frequency(frequency: Any) -> int:
    """
    Renewal frequency as an integer in [1, 12].

    Raises:
        ValidationError: If the value is not an integer in range
    """
    if isinstance(frequency, bool):
        raise ValidationError("The frequency must be an integer.")

    if isinstance(frequency, int):
        value = frequency
    elif isinstance(frequency, str):
        try:
            value = int(frequency.strip())
        except ValueError:
            raise ValidationError("The frequency must be an integer.")
    else:
        raise ValidationError("The frequency must be an integer.")

    if not MIN_RENEWAL_FREQUENCY <= value <= MAX_RENEWAL_FREQUENCY:
        raise ValidationError(
            f"The frequency must be between {MIN_RENEWAL_FREQUENCY} and {MAX_RENEWAL_FREQUENCY}."
        )
    return value


class LifecycleAdapter:
    """
    Order lifecycle operations for Pterodactyl servers.

    Usage:
        adapter = LifecycleAdapter(config, store, billing, client)
        result = adapter.create(order)
        if not result.ok:
            flash(result.message)
    """

    def __init__(
        self,
        config: ServiceConfig,
        store: HostStore,
        billing: BillingEngine,
        client: PterodactylClient,
        inventory: Optional[InventoryResolver] = None,
    ):
        self.config = config
        self.store = store
        self.billing = billing
        self.client = client
        self.inventory = inventory or InventoryResolver(store)
        self.forms = CheckoutFormBuilder(self.inventory)

    # =========================================
    # HELPERS
    # =========================================

    def _guard(
        self,
        action: str,
        order: Order,
        operation: Callable[[], OperationResult],
        failure_message: Optional[str] = None,
    ) -> OperationResult:
        """Run an operation, turning service errors into a failure result."""
        try:
            result = operation()
        except ServiceError as e:
            logger.warning(f"{action} failed for order {order.id}: {e}", extra={"order_id": order.id})
            return OperationResult.failure(e, failure_message)

        logger.info(f"{action} completed for order {order.id}", extra={"order_id": order.id})
        return result

    def _server(self, order: Order) -> PanelServer:
        return self.client.get_server(order.id)

    def invoice_url(self, payment: Payment, gateway: Optional[str] = None) -> str:
        url = self.config.invoice_url_template.format(payment_id=payment.id)
        if gateway:
            url = f"{url}?gateway={gateway}"
        return url

    def _format_date(self, value: datetime) -> str:
        return value.strftime(self.config.date_format)

    # =========================================
    # CHECKOUT
    # =========================================

    def checkout_config(self, package: Package) -> List[Dict[str, Any]]:
        """Checkout form of a package, ready for rendering."""
        return [f.to_dict() for f in self.forms.build_schema(package)]

    def service_buttons(self, order: Order) -> List[Dict[str, Any]]:
        """Buttons shown on the order management page."""
        buttons: List[Dict[str, Any]] = []

        if self.config.panel.sso_enabled:
            buttons.append({
                "name": "Login to Panel",
                "icon": '<i class="bx bx-terminal"></i>',
                "color": "primary",
                "href": f"/pterodactyl/{order.id}/login-to-panel",
                "target": "_blank",
            })

        try:
            ip = self.client.server_ip(order.id).strip()
        except RemoteApiError as e:
            logger.warning(f"Could not look up server IP for order {order.id}: {e}")
            ip = ""

        if ip:
            buttons.append({
                "tag": "button",
                "name": ip,
                "color": "emerald",
                "onclick": "copyToClipboard(this)",
            })

        return buttons

    # =========================================
    # CREATE
    # =========================================

    def create(self, order: Order) -> OperationResult:
        """Deploy a server for a freshly paid order."""
        def run() -> OperationResult:
            self._ensure_no_server(order)
            location = self.inventory.resolve_location(order)
            reserved = self.inventory.reserve(location)
            try:
                server = self._deploy(order, location)
            except Exception:
                if reserved:
                    self.inventory.release(location)
                raise
            return OperationResult.success(
                "Server has been created",
                server_id=server.id,
                location_id=location.id,
            )

        return self._guard("Create", order, run)

    def _ensure_no_server(self, order: Order) -> None:
        try:
            server = self._server(order)
        except RemoteNotFoundError:
            return
        raise StateConflictError(
            f"Order {order.id} already has server {server.id}",
            {"server_id": server.id},
        )

    def _link_external_user(self, order: Order, remote_user: Dict[str, Any], password: str = "") -> None:
        order.external_user = ExternalUser(
            external_id=remote_user["id"],
            username=remote_user.get("email", ""),
            password=password,
            data=remote_user,
        )
        self.store.save_order(order)

    def _deploy(self, order: Order, location: Location) -> PanelServer:
        package = order.package
        egg = parse_egg(package.get("egg"))
        if egg.id is None:
            raise ValidationError(f"Package {package.id} has no egg configured")

        remote_user = self.client.get_or_create_user(order.user)
        if not order.has_external_user():
            self._link_external_user(order, remote_user)

        environment = self._environment(order, egg, remote_user)
        spec = BuildSpec.from_package(package)

        payload: Dict[str, Any] = {
            "name": order.name,
            "user": remote_user["id"],
            "egg": egg.id,
            "docker_image": package.get("docker_image", egg.docker_image),
            "startup": package.get("startup", egg.startup),
            "environment": environment,
            "limits": spec.limits,
            "feature_limits": spec.feature_limits,
            "start_on_completion": True,
            "external_id": str(order.id),
        }

        if any(value in ALLOCATION_PLACEHOLDERS for value in environment.values()):
            node = self.inventory.select_node(location, package)
            allocation = self.client.free_allocation(node.id)
            self._fill_allocation(environment, allocation)
            payload["allocation"] = {"default": allocation.id}
        else:
            payload["deploy"] = {
                "locations": [location.id],
                "dedicated_ip": False,
                "port_range": [],
            }

        return self.client.create_server(payload)

    def _environment(self, order: Order, egg: Egg, remote_user: Dict[str, Any]) -> Dict[str, str]:
        """
        Egg defaults, overridden by admin presets, overridden by the values the
        client entered at checkout for the fields they were shown.
        """
        package = order.package
        environment = egg.default_environment()
        for key, value in package.get("environment", {}).items():
            if value is not None:
                environment[key] = str(value)

        client_fields = {f.key for f in self.forms.variable_fields(package)}
        for key in client_fields:
            value = order.option(key)
            if value is not None:
                environment[key] = str(value)

        for key, value in environment.items():
            if value == "USERNAME":
                environment[key] = remote_user.get("username", order.user.username)
            elif value == "PASSWORD":
                environment[key] = _random_text(16)
            elif value == "RANDOM_TEXT":
                environment[key] = _random_text()
            elif value == "RANDOM_NUMBER":
                environment[key] = _random_number()

        return environment

    @staticmethod
    def _fill_allocation(environment: Dict[str, str], allocation: Allocation) -> None:
        for key, value in environment.items():
            if value == "NODE_IP":
                environment[key] = allocation.ip
            elif value == "AUTO_PORT":
                environment[key] = str(allocation.port)

    # =========================================
    # RENEW
    # =========================================

    def renew(self, order: Order, frequency: Any) -> OperationResult:
        """Generate a renewal invoice covering `frequency` periods."""
        def run() -> OperationResult:
            periods = validate_frequency(frequency)

            duplicate = self.billing.find_unpaid(order.id, order.due_date)
            if duplicate is not None:
                logger.info(
                    f"Removing duplicate renewal payment {duplicate.id}",
                    extra={"order_id": order.id, "payment_id": duplicate.id},
                )
                self.billing.delete(duplicate.id)

            price = order.price.renewal_price * periods
            period = order.price.period * periods
            next_due_date = order.due_date + timedelta(days=period)

            payment = self.billing.generate(
                order_id=order.id,
                user_id=order.user_id,
                description=(
                    f"Renewal of {order.name} from {self._format_date(order.due_date)} "
                    f"to {self._format_date(next_due_date)}"
                ),
                amount=price,
                due_date=order.due_date,
                handler=PaymentHandler.RENEWAL,
                options={"period": period},
            )
            return OperationResult.success(
                "Invoice has been generated successfully",
                redirect_url=self.invoice_url(payment),
                payment=payment,
            )

        return self._guard("Renew", order, run)

    # =========================================
    # CANCEL
    # =========================================

    def cancel(
        self,
        order: Order,
        cancelled_at: Optional[str],
        cancel_reason: Optional[str] = None,
        gateway: Optional[str] = None,
    ) -> OperationResult:
        """Cancel the order, or invoice the cancellation fee first when there is one."""
        def run() -> OperationResult:
            if not cancelled_at:
                raise ValidationError("The cancelled at field is required.")
            if cancel_reason is not None and len(cancel_reason) > MAX_CANCEL_REASON_LENGTH:
                raise ValidationError(
                    f"The cancel reason may not be greater than {MAX_CANCEL_REASON_LENGTH} characters."
                )

            if order.status != OrderStatus.ACTIVE:
                raise StateConflictError("This service has already been cancelled")

            if order.price.cancellation_fee > 0:
                payment = self.billing.generate(
                    order_id=order.id,
                    user_id=order.user_id,
                    description=f"Cancellation: {order.name}",
                    amount=order.price.cancellation_fee,
                    due_date=datetime.now() + timedelta(hours=CANCELLATION_INVOICE_HOURS),
                    handler=PaymentHandler.CANCEL,
                    options={"cancelled_at": cancelled_at, "cancel_reason": cancel_reason},
                )
                return OperationResult.success(
                    "Please pay the cancellation fee to cancel your service",
                    redirect_url=self.invoice_url(payment, gateway),
                    payment=payment,
                )

            order.cancel(cancelled_at, cancel_reason)
            self.store.save_order(order)
            return OperationResult.success("Your service was cancelled")

        return self._guard("Cancel", order, run)

    def undo_cancel(self, order: Order) -> OperationResult:
        """Bring a cancelled order back to active."""
        def run() -> OperationResult:
            if (
                self.config.undo_cancel_requires_cancelled
                and order.status != OrderStatus.CANCELLED
            ):
                raise StateConflictError("This service is not cancelled")

            order.status = OrderStatus.ACTIVE
            order.cancelled_at = None
            order.cancel_reason = None
            self.store.save_order(order)
            return OperationResult.success("Your service cancellation has been undone")

        return self._guard("Undo cancel", order, run)

    # =========================================
    # PAYMENT HANDLERS
    # =========================================

    def handle_paid_payment(self, payment: Payment) -> OperationResult:
        """Apply the renewal or cancellation a settled payment was waiting for."""
        order = self.store.get_order(payment.order_id)
        if order is None:
            return OperationResult.failure(NotFoundError(f"Order not found: {payment.order_id}"))

        def run() -> OperationResult:
            if payment.status == PaymentStatus.PAID:
                raise StateConflictError(f"Payment {payment.id} has already been handled")

            if payment.handler == PaymentHandler.RENEWAL:
                period = int(payment.options.get("period", order.price.period))
                due_date = order.due_date + timedelta(days=period)
                # The order is only touched once the panel has answered
                if order.status == OrderStatus.SUSPENDED:
                    self.client.unsuspend_server(self._server(order).id)
                    order.status = OrderStatus.ACTIVE
                order.due_date = due_date
                message = f"Service renewed until {self._format_date(due_date)}"
            else:
                order.cancel(
                    payment.options.get("cancelled_at") or datetime.now().isoformat(),
                    payment.options.get("cancel_reason"),
                )
                message = "Your service was cancelled"

            self.store.save_order(order)
            self.billing.mark_paid(payment.id)
            payment.status = PaymentStatus.PAID
            return OperationResult.success(message)

        return self._guard(f"Payment {payment.handler.value}", order, run)

    # =========================================
    # UPGRADE / SUSPEND / TERMINATE
    # =========================================

    def upgrade(self, order: Order, old_package: Package, new_package: Package) -> OperationResult:
        """Resize the server to the limits of the new package."""
        def run() -> OperationResult:
            server = self._server(order)
            self.client.build_server(
                server.id,
                BuildSpec.from_package(new_package, allocation=server.allocation),
            )
            logger.info(
                f"Moved server {server.id} from package {old_package.id} to {new_package.id}",
                extra={"order_id": order.id, "server_id": server.id},
            )
            return OperationResult.success("Server has been upgraded", server_id=server.id)

        return self._guard("Upgrade", order, run)

    def suspend(self, order: Order) -> OperationResult:
        def run() -> OperationResult:
            server = self._server(order)
            self.client.suspend_server(server.id)
            return OperationResult.success("Server has been suspended", server_id=server.id)

        return self._guard("Suspend", order, run)

    def unsuspend(self, order: Order) -> OperationResult:
        def run() -> OperationResult:
            server = self._server(order)
            self.client.unsuspend_server(server.id)
            return OperationResult.success("Server has been unsuspended", server_id=server.id)

        return self._guard("Unsuspend", order, run)

    def terminate(self, order: Order) -> OperationResult:
        """Delete the server. Failures are reported, not retried."""
        def run() -> OperationResult:
            server = self._server(order)
            self.client.delete_server(server.id)
            return OperationResult.success("Server has been deleted", server_id=server.id)

        return self._guard("Terminate", order, run)

    # =========================================
    # ACCOUNT
    # =========================================

    def change_password(self, order: Order, new_password: str) -> OperationResult:
        """Set a new panel password for the order's owner."""
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            return OperationResult.failure(ValidationError(
                f"The password must be at least {MIN_PASSWORD_LENGTH} characters."
            ))

        def run() -> OperationResult:
            remote_user = self.client.get_or_create_user(order.user)

            if not order.has_external_user():
                self._link_external_user(order, remote_user, new_password)

            self.client.update_user(remote_user["id"], {
                "email": remote_user.get("email", order.user.email),
                "username": remote_user.get("username", order.user.username),
                "first_name": remote_user.get("first_name", order.user.first_name),
                "last_name": remote_user.get("last_name", order.user.last_name),
                "password": new_password,
            })

            order.external_user.password = new_password
            self.store.save_order(order)
            return OperationResult.success("Password has been changed")

        return self._guard(
            "Change password",
            order,
            run,
            failure_message="Something went wrong, please try again.",
        )
