# Services module

from shopledger.services.stock_ledger import StockLedger
from shopledger.services.supplier_directory import SupplierDirectory
from shopledger.services.purchase_order_service import (
    PurchaseOrderService,
    ReceivingPolicy,
    ReceiptResult,
)
from shopledger.services.quality_control_service import QualityControlService
from shopledger.services.payable_ledger_service import (
    PayableLedgerService,
    derive_status,
)
from shopledger.services.procurement_report_service import ProcurementReportService
