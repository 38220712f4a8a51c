from .account import Account, GLMapping
from .payment import Payment, PaymentAttachment, PaymentLine, PaymentStatus
from .receipt import Receipt
from .user import User, UserSession
from .voucher import Voucher, VoucherLine, VoucherStatus
