from app.models.user import User
from app.models.catalog import Course, TestSeries, Ebook, StudyMaterial
from app.models.order import Order
from app.models.payment_proof import PaymentProof
from app.models.entitlement import Entitlement
from app.models.order_event import OrderEvent
from app.models.notifications import Notification

# add ALL models here
