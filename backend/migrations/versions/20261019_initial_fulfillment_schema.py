"""Initial fulfillment schema: inventory ledger, purchasing, receiving, sales, shipping

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. InventoryItem, LocationStock, InventoryMovement (ledger + journal)
2. PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatusHistory
3. ReceivingReceipt, ReceiptLine
4. SaleOrder, SaleOrderItem
5. Shipment, ShipmentItem, ShipmentTrackingEvent
6. DocumentSequence, AuditEvent
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _money(name, nullable=False, server_default='0'):
    return sa.Column(name, sa.Numeric(precision=12, scale=2), nullable=nullable,
                     server_default=server_default if not nullable else None)


def upgrade():
    # ==========================================================================
    # 1. INVENTORY LEDGER
    # ==========================================================================
    op.create_table('inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False, server_default='Product'),
        sa.Column('description', sa.Text(), nullable=True),
        _money('rate'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity >= 0', name=op.f('ck_inventory_items_quantity_nonneg')),
        sa.CheckConstraint('rate >= 0', name=op.f('ck_inventory_items_rate_nonneg')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_inventory_items')),
        sa.UniqueConstraint('sku', name=op.f('uq_inventory_items_sku')),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_inventory_items_name', 'inventory_items', ['name'])

    op.create_table('location_stock',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.String(length=64), nullable=False),
        sa.Column('location_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity >= 0', name=op.f('ck_location_stock_quantity_nonneg')),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ondelete='CASCADE',
                                name=op.f('fk_location_stock_item_id_inventory_items')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_location_stock')),
        sa.UniqueConstraint('item_id', 'location_id', name='uq_location_stock_item_location'),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f('ix_location_stock_item_id'), 'location_stock', ['item_id'])
    op.create_index(op.f('ix_location_stock_location_id'), 'location_stock', ['location_id'])

    op.create_table('inventory_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=True),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('delta', sa.Integer(), nullable=False),
        sa.Column('quantity_after', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('reference_type', sa.String(length=32), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('actor_id', sa.String(length=64), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('delta <> 0', name=op.f('ck_inventory_movements_delta_nonzero')),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ondelete='SET NULL',
                                name=op.f('fk_inventory_movements_item_id_inventory_items')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_inventory_movements')),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f('ix_inventory_movements_item_id'), 'inventory_movements', ['item_id'])
    op.create_index(op.f('ix_inventory_movements_reason'), 'inventory_movements', ['reason'])
    op.create_index('ix_inventory_movements_reference', 'inventory_movements', ['reference_type', 'reference_id'])

    # ==========================================================================
    # 2. PURCHASE ORDERS
    # ==========================================================================
    op.create_table('purchase_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(length=32), nullable=False),
        sa.Column('vendor_name', sa.String(length=255), nullable=False),
        sa.Column('vendor_email', sa.String(length=255), nullable=False),
        sa.Column('vendor_phone', sa.String(length=64), nullable=True),
        sa.Column('vendor_address', sa.Text(), nullable=True),
        _money('subtotal'),
        _money('tax'),
        _money('discount'),
        _money('shipping_cost'),
        _money('total'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='Draft'),
        sa.Column('approval_status', sa.String(length=16), nullable=False, server_default='Pending'),
        sa.Column('receiving_status', sa.String(length=32), nullable=False, server_default='Pending'),
        sa.Column('priority', sa.String(length=16), nullable=False, server_default='Medium'),
        sa.Column('payment_terms', sa.String(length=64), nullable=False, server_default='Net 30'),
        sa.Column('expected_delivery', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actual_delivery', sa.DateTime(timezone=True), nullable=True),
        sa.Column('carrier', sa.String(length=64), nullable=True),
        sa.Column('tracking_number', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('internal_notes', sa.Text(), nullable=True),
        sa.Column('receiving_notes', sa.Text(), nullable=True),
        sa.Column('department', sa.String(length=128), nullable=True),
        sa.Column('delivery_location', sa.String(length=255), nullable=True),
        sa.Column('approved_by', sa.String(length=64), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_purchase_orders')),
        sa.UniqueConstraint('po_number', name=op.f('uq_purchase_orders_po_number')),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f('ix_purchase_orders_status'), 'purchase_orders', ['status'])
    op.create_index(op.f('ix_purchase_orders_created_at'), 'purchase_orders', ['created_at'])
    op.create_index('ix_purchase_orders_status_created', 'purchase_orders', ['status', 'created_at'])

    op.create_table('purchase_order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        _money('unit_price'),
        _money('total_price'),
        sa.Column('received_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pending_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity >= 1', name=op.f('ck_purchase_order_items_quantity_positive')),
        sa.CheckConstraint('received_quantity >= 0', name=op.f('ck_purchase_order_items_received_nonneg')),
        sa.CheckConstraint('received_quantity <= quantity',
                           name=op.f('ck_purchase_order_items_received_within_ordered')),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ondelete='CASCADE',
                                name=op.f('fk_purchase_order_items_purchase_order_id_purchase_orders')),
        sa.ForeignKeyConstraint(['product_id'], ['inventory_items.id'], ondelete='SET NULL',
                                name=op.f('fk_purchase_order_items_product_id_inventory_items')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_purchase_order_items')),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f('ix_purchase_order_items_purchase_order_id'), 'purchase_order_items', ['purchase_order_id'])
    op.create_index(op.f('ix_purchase_order_items_product_id'), 'purchase_order_items', ['product_id'])

    op.create_table('purchase_order_status_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('changed_by', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ondelete='CASCADE',
                                name=op.f('fk_purchase_order_status_history_purchase_order_id_purchase_orders')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_purchase_order_status_history')),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f('ix_purchase_order_status_history_purchase_order_id'),
                    'purchase_order_status_history', ['purchase_order_id'])

    # ==========================================================================
    # 3. RECEIVING
    # ==========================================================================
    op.create_table('receiving_receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('receipt_number', sa.String(length=32), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(length=32), nullable=False),
        sa.Column('vendor_name', sa.String(length=255), nullable=False),
        sa.Column('vendor_email', sa.String(length=255), nullable=True),
        _money('total_value'),
        sa.Column('tracking_number', sa.String(length=128), nullable=True),
        sa.Column('carrier', sa.String(length=64), nullable=True),
        sa.Column('delivery_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Received'),
        sa.Column('inspection_passed', sa.Boolean(), nullable=True),
        sa.Column('inspection_notes', sa.Text(), nullable=True),
        sa.Column('inspected_by', sa.String(length=64), nullable=True),
        sa.Column('inspected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by', sa.String(length=64), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('discrepancy_notes', sa.Text(), nullable=True),
        sa.Column('receiving_location', sa.String(length=64), nullable=True),
        sa.Column('storage_location', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('received_by', sa.String(length=64), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'],
                                name=op.f('fk_receiving_receipts_purchase_order_id_purchase_orders')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_receiving_receipts')),
        sa.UniqueConstraint('receipt_number', name=op.f('uq_receiving_receipts_receipt_number')),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f('ix_receiving_receipts_purchase_order_id'), 'receiving_receipts', ['purchase_order_id'])
    op.create_index(op.f('ix_receiving_receipts_status'), 'receiving_receipts', ['status'])
    op.create_index('ix_receiving_receipts_status_received', 'receiving_receipts', ['status', 'received_at'])

    op.create_table('receipt_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('receipt_id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_item_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('quantity_ordered', sa.Integer(), nullable=False),
        sa.Column('quantity_received', sa.Integer(), nullable=False),
        _money('unit_price', server_default=None),
        _money('total_value', server_default=None),
        sa.Column('condition', sa.String(length=16), nullable=False, server_default='Good'),
        sa.Column('location', sa.String(length=64), nullable=True),
        sa.Column('batch_number', sa.String(length=64), nullable=True),
        sa.Column('serial_number', sa.String(length=128), nullable=True),
        sa.Column('expiry_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.CheckConstraint('quantity_received >= 1', name=op.f('ck_receipt_lines_quantity_positive')),
        sa.ForeignKeyConstraint(['receipt_id'], ['receiving_receipts.id'], ondelete='CASCADE',
                                name=op.f('fk_receipt_lines_receipt_id_receiving_receipts')),
        sa.ForeignKeyConstraint(['purchase_order_item_id'], ['purchase_order_items.id'],
                                name=op.f('fk_receipt_lines_purchase_order_item_id_purchase_order_items')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_receipt_lines')),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f('ix_receipt_lines_receipt_id'), 'receipt_lines', ['receipt_id'])

    # ==========================================================================
    # 4. SALES ORDERS
    # ==========================================================================
    op.create_table('sale_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=False),
        sa.Column('customer_phone', sa.String(length=64), nullable=True),
        sa.Column('customer_address', sa.Text(), nullable=True),
        _money('subtotal'),
        _money('tax'),
        _money('discount'),
        _money('shipping_cost'),
        _money('total'),
        sa.Column('carrier', sa.String(length=64), nullable=True),
        sa.Column('expected_delivery', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Pending'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='Pending'),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by', sa.String(length=64), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_sale_orders')),
        sa.UniqueConstraint('order_number', name=op.f('uq_sale_orders_order_number')),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f('ix_sale_orders_status'), 'sale_orders', ['status'])
    op.create_index(op.f('ix_sale_orders_created_at'), 'sale_orders', ['created_at'])
    op.create_index('ix_sale_orders_status_created', 'sale_orders', ['status', 'created_at'])

    op.create_table('sale_order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        _money('unit_price', server_default=None),
        _money('total_price', server_default=None),
        sa.CheckConstraint('quantity >= 1', name=op.f('ck_sale_order_items_quantity_positive')),
        sa.ForeignKeyConstraint(['sale_order_id'], ['sale_orders.id'], ondelete='CASCADE',
                                name=op.f('fk_sale_order_items_sale_order_id_sale_orders')),
        sa.ForeignKeyConstraint(['product_id'], ['inventory_items.id'], ondelete='SET NULL',
                                name=op.f('fk_sale_order_items_product_id_inventory_items')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_sale_order_items')),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f('ix_sale_order_items_sale_order_id'), 'sale_order_items', ['sale_order_id'])
    op.create_index(op.f('ix_sale_order_items_product_id'), 'sale_order_items', ['product_id'])

    # ==========================================================================
    # 5. SHIPMENTS
    # ==========================================================================
    op.create_table('shipments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shipment_number', sa.String(length=32), nullable=False),
        sa.Column('sales_order_id', sa.Integer(), nullable=False),
        sa.Column('sales_order_number', sa.String(length=32), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('customer_phone', sa.String(length=64), nullable=True),
        sa.Column('ship_street', sa.String(length=255), nullable=False),
        sa.Column('ship_city', sa.String(length=128), nullable=False),
        sa.Column('ship_state', sa.String(length=128), nullable=True),
        sa.Column('ship_zip_code', sa.String(length=32), nullable=False),
        sa.Column('ship_country', sa.String(length=128), nullable=False, server_default='Singapore'),
        sa.Column('carrier', sa.String(length=32), nullable=False),
        sa.Column('shipping_method', sa.String(length=32), nullable=False),
        sa.Column('tracking_number', sa.String(length=128), nullable=True),
        sa.Column('estimated_delivery', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actual_delivery', sa.DateTime(timezone=True), nullable=True),
        _money('shipping_cost'),
        sa.Column('weight', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('priority', sa.String(length=16), nullable=False, server_default='Normal'),
        sa.Column('signature_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        _money('insurance_value', nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='Pending'),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['sales_order_id'], ['sale_orders.id'],
                                name=op.f('fk_shipments_sales_order_id_sale_orders')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_shipments')),
        sa.UniqueConstraint('shipment_number', name=op.f('uq_shipments_shipment_number')),
        sa.UniqueConstraint('sales_order_id', name='uq_shipments_sales_order'),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f('ix_shipments_tracking_number'), 'shipments', ['tracking_number'])
    op.create_index(op.f('ix_shipments_status'), 'shipments', ['status'])
    op.create_index(op.f('ix_shipments_created_at'), 'shipments', ['created_at'])

    op.create_table('shipment_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shipment_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        _money('unit_price', server_default=None),
        sa.ForeignKeyConstraint(['shipment_id'], ['shipments.id'], ondelete='CASCADE',
                                name=op.f('fk_shipment_items_shipment_id_shipments')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_shipment_items')),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f('ix_shipment_items_shipment_id'), 'shipment_items', ['shipment_id'])
    op.create_index(op.f('ix_shipment_items_product_id'), 'shipment_items', ['product_id'])

    op.create_table('shipment_tracking_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shipment_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_by', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['shipment_id'], ['shipments.id'], ondelete='CASCADE',
                                name=op.f('fk_shipment_tracking_events_shipment_id_shipments')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_shipment_tracking_events')),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f('ix_shipment_tracking_events_shipment_id'), 'shipment_tracking_events', ['shipment_id'])

    # ==========================================================================
    # 6. NUMBERING + AUDIT
    # ==========================================================================
    op.create_table('document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_document_sequences')),
        sa.UniqueConstraint('entity_type', name=op.f('uq_document_sequences_entity_type')),
        sqlite_autoincrement=True,
    )

    op.create_table('audit_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('entity_name', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_audit_events')),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f('ix_audit_events_actor_id'), 'audit_events', ['actor_id'])
    op.create_index(op.f('ix_audit_events_action'), 'audit_events', ['action'])
    op.create_index(op.f('ix_audit_events_created_at'), 'audit_events', ['created_at'])
    op.create_index('ix_audit_events_entity', 'audit_events', ['entity_type', 'entity_id'])


def downgrade():
    op.drop_table('audit_events')
    op.drop_table('document_sequences')
    op.drop_table('shipment_tracking_events')
    op.drop_table('shipment_items')
    op.drop_table('shipments')
    op.drop_table('sale_order_items')
    op.drop_table('sale_orders')
    op.drop_table('receipt_lines')
    op.drop_table('receiving_receipts')
    op.drop_table('purchase_order_status_history')
    op.drop_table('purchase_order_items')
    op.drop_table('purchase_orders')
    op.drop_table('inventory_movements')
    op.drop_table('location_stock')
    op.drop_table('inventory_items')
