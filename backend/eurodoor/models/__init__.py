from .directory import Customer, Employee
from .stock import RawMaterialStock, ProductStore, Product, Tool, InventoryLog
from .procurement import RawMaterialRequest
from .production import ProductionRequest, MaterialReleaseRequest, AssignedTask
from .orders import Cart, CartItem, Order, OrderItem, Payment, Receipt, Dispatch, Feedback
from .service import ServiceBooking, ServiceFeedback, ServiceReceipt
from .tools import ToolRequest, ToolRequestLine

__all__ = [
    'Customer', 'Employee',
    'RawMaterialStock', 'ProductStore', 'Product', 'Tool', 'InventoryLog',
    'RawMaterialRequest',
    'ProductionRequest', 'MaterialReleaseRequest', 'AssignedTask',
    'Cart', 'CartItem', 'Order', 'OrderItem', 'Payment', 'Receipt', 'Dispatch', 'Feedback',
    'ServiceBooking', 'ServiceFeedback', 'ServiceReceipt',
    'ToolRequest', 'ToolRequestLine',
]
