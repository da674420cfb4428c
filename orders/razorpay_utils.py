# orders/razorpay_utils.py
import hmac
import hashlib
import logging
import time
from django.conf import settings
import requests

logger = logging.getLogger(__name__)


def generate_payment_signature(secret, razorpay_order_id, razorpay_payment_id):
    """HMAC-SHA256 over "<order_id>|<payment_id>", as Razorpay signs checkout callbacks"""
    message = f"{razorpay_order_id}|{razorpay_payment_id}"
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def generate_webhook_signature(secret, payload):
    """HMAC-SHA256 over the raw webhook body"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


class RazorpayAPI:
    """
    Razorpay Orders API client.

    Built from settings by default; pass explicit keys to talk to a
    different account or to stub it out in tests.
    """

    def __init__(self, key_id=None, key_secret=None, webhook_secret=None, base_url=None, currency=None, timeout=None):
        self.key_id = key_id if key_id is not None else settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret if key_secret is not None else settings.RAZORPAY_KEY_SECRET
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.RAZORPAY_WEBHOOK_SECRET
        self.base_url = (base_url or settings.RAZORPAY_BASE_URL).strip().rstrip("/")
        self.currency = currency or settings.RAZORPAY_CURRENCY
        self.timeout = timeout or settings.RAZORPAY_TIMEOUT

    @property
    def auth(self):
        return (self.key_id, self.key_secret)

    def create_order(self, amount, receipt, notes=None):
        """
        Create a gateway order for `amount` minor units.
        Returns (success, order_dict or error message)

        Not retried: a timed out request may still have created the order
        on Razorpay's side.
        """
        if not self.key_id or not self.key_secret:
            logger.error("Razorpay keys are not configured")
            return False, "Payment gateway is not configured"

        payload = {
            "amount": amount,
            "currency": self.currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            response = requests.post(
                f"{self.base_url}/orders",
                auth=self.auth,
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Razorpay order creation error: {str(e)}", exc_info=True)
            return False, "Payment gateway error"
        except ValueError:
            logger.error("Razorpay order creation returned a non-JSON body")
            return False, "Payment gateway error"

        if not data.get("id"):
            logger.error(f"Razorpay order creation failed: {data}")
            return False, "Payment gateway error"

        logger.info(f"Razorpay order created: {data['id']} for {receipt}")
        return True, data

    def fetch_order(self, razorpay_order_id):
        """Fetch an existing gateway order with retry. Returns (success, order_dict or error message)"""
        url = f"{self.base_url}/orders/{razorpay_order_id}"
        for attempt in range(3):
            try:
                response = requests.get(url, auth=self.auth, timeout=self.timeout)
                response.raise_for_status()
                return True, response.json()
            except requests.exceptions.Timeout:
                logger.warning(f"Razorpay fetch timed out (attempt {attempt+1}) for {razorpay_order_id}")
                if attempt == 2:
                    return False, "Payment gateway timeout"
                time.sleep(2 ** attempt)
            except (requests.exceptions.RequestException, ValueError) as e:
                logger.error(f"Razorpay fetch error for {razorpay_order_id}: {str(e)}")
                return False, "Payment gateway error"

    def verify_payment_signature(self, razorpay_order_id, razorpay_payment_id, signature):
        if not self.key_secret or not signature:
            return False
        expected = generate_payment_signature(self.key_secret, razorpay_order_id, razorpay_payment_id)
        return hmac.compare_digest(expected.encode("utf-8"), str(signature).encode("utf-8"))

    def verify_webhook_signature(self, payload, signature):
        if not self.webhook_secret or not signature:
            return False
        expected = generate_webhook_signature(self.webhook_secret, payload)
        return hmac.compare_digest(expected.encode("utf-8"), str(signature).encode("utf-8"))
