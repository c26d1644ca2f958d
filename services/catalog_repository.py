"""
Catalog Repository - Database access layer for products, services and stock.
"""

import logging
from datetime import datetime
from typing import List, Optional, Dict
from sqlalchemy.orm import Session
from sqlalchemy import or_

from database.models import Product, Service
from services.exceptions import InsufficientStock, NotFoundError, ValidationError
from services.pricing import (
    PRODUCT,
    SERVICE,
    CatalogRef,
    CatalogSnapshot,
    price_history_entry,
)
from validators import (
    parse_date,
    require_valid,
    validate_product_request,
    validate_required_fields,
)

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = ['name', 'category', 'min_stock', 'cost', 'price', 'supplier',
                  'batch', 'image', 'observation']
SERVICE_FIELDS = ['name', 'category', 'description', 'cost', 'estimated_hours', 'active']


class CatalogRepository:
    """Repository for product and service database operations."""

    def __init__(self, session: Session, organization_id: str):
        self.session = session
        self.organization_id = organization_id

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    def _product_query(self):
        return self.session.query(Product).filter(
            Product.organization_id == self.organization_id
        )

    def _get_product(self, product_id: str) -> Product:
        product = self._product_query().filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError('Product', product_id)
        return product

    def list_products(self, category: str = None, low_stock_only: bool = False) -> List[Dict]:
        """List products with optional filters."""
        query = self._product_query()
        if category:
            query = query.filter(Product.category == category)
        if low_stock_only:
            query = query.filter(Product.stock <= Product.min_stock)
        return [p.to_dict() for p in query.order_by(Product.name).all()]

    def get_product(self, product_id: str) -> Optional[Dict]:
        """Get a product by ID."""
        product = self._product_query().filter(Product.id == product_id).first()
        return product.to_dict() if product else None

    def create_product(self, data: Dict) -> Dict:
        """Create a new product. Initial stock is set here and only here."""
        require_valid(validate_product_request(data))
        product = Product(
            organization_id=self.organization_id,
            name=data['name'].strip(),
            category=data.get('category'),
            stock=data.get('stock') or 0,
            min_stock=data.get('min_stock') or 0,
            cost=data.get('cost') or 0,
            price=data.get('price') or 0,
            supplier=data.get('supplier'),
            batch=data.get('batch'),
            expiry_date=parse_date(data.get('expiry_date'), required=False, field='expiry_date'),
            image=data.get('image'),
            observation=data.get('observation'),
        )
        self.session.add(product)
        self.session.flush()
        logger.info(f"Created product: {product.id}")
        return product.to_dict()

    def update_product(self, product_id: str, data: Dict) -> Optional[Dict]:
        """
        Update a product's descriptive and pricing fields.
        ``stock`` is ignored: it moves only through sales and restock.
        """
        require_valid(validate_product_request(data, partial=True))
        product = self._product_query().filter(Product.id == product_id).first()
        if not product:
            return None

        if 'stock' in data and data['stock'] != product.stock:
            logger.warning(f"Ignored direct stock write on product {product_id}")

        for key in PRODUCT_FIELDS:
            if key in data:
                setattr(product, key, data[key])
        if 'expiry_date' in data:
            product.expiry_date = parse_date(data['expiry_date'], required=False, field='expiry_date')

        product.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated product: {product_id}")
        return product.to_dict()

    def delete_product(self, product_id: str) -> bool:
        """Delete a product. Past orders keep their line snapshots."""
        product = self._product_query().filter(Product.id == product_id).first()
        if not product:
            return False
        self.session.delete(product)
        self.session.flush()
        logger.info(f"Deleted product: {product_id}")
        return True

    def receive_stock(self, product_id: str, quantity: int, reason: str = None) -> Dict:
        """Restock: add a positive quantity to a product."""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("Quantidade deve ser um inteiro positivo", field='quantity')
        product = self._get_product(product_id)
        product.stock = (product.stock or 0) + quantity
        product.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Received {quantity} units of product {product_id}: {reason}")
        return product.to_dict()

    def decrement_stock(self, product_id: str, quantity: int) -> None:
        """
        Take ``quantity`` units out of stock in one conditional UPDATE
        (``stock = stock - n WHERE stock >= n``), so two concurrent sales
        cannot both pass a check and oversell.
        """
        updated = self._product_query().filter(
            Product.id == product_id,
            Product.stock >= quantity
        ).update(
            {Product.stock: Product.stock - quantity, Product.updated_at: datetime.utcnow()},
            synchronize_session='fetch'
        )
        if updated == 0:
            product = self._get_product(product_id)
            logger.warning(
                f"Stock decrement refused for {product_id}: available={product.stock}, requested={quantity}"
            )
            raise InsufficientStock(product.id, product.name, product.stock, quantity)
        logger.info(f"Decremented stock of {product_id} by {quantity}")

    def check_stock(self, quantities: Dict[str, int]) -> None:
        """Validate aggregated quantities against current stock before writing anything."""
        for product_id, quantity in quantities.items():
            product = self._get_product(product_id)
            if quantity > (product.stock or 0):
                raise InsufficientStock(product.id, product.name, product.stock or 0, quantity)

    def get_low_stock_products(self) -> List[Dict]:
        """Get all products at or below their minimum stock."""
        products = self._product_query().filter(
            Product.stock <= Product.min_stock
        ).order_by(Product.stock).all()
        return [p.to_dict() for p in products]

    def search_products(self, query: str) -> List[Dict]:
        """Search products by name, category or supplier."""
        search = f"%{query}%"
        products = self._product_query().filter(
            or_(
                Product.name.ilike(search),
                Product.category.ilike(search),
                Product.supplier.ilike(search)
            )
        ).order_by(Product.name).all()
        return [p.to_dict() for p in products]

    def get_categories(self) -> Dict[str, List[str]]:
        """Distinct categories in use, per catalog kind."""
        product_rows = self._product_query().with_entities(Product.category).filter(
            Product.category.isnot(None)
        ).distinct().all()
        service_rows = self._service_query().with_entities(Service.category).filter(
            Service.category.isnot(None)
        ).distinct().all()
        return {
            'products': sorted(r[0] for r in product_rows if r[0]),
            'services': sorted(r[0] for r in service_rows if r[0]),
        }

    def get_stock_value(self) -> float:
        """Calculate total stock value at cost."""
        return sum(p.stock * (p.cost or 0) for p in self._product_query().all())

    # =========================================================================
    # SERVICES
    # =========================================================================

    def _service_query(self):
        return self.session.query(Service).filter(
            Service.organization_id == self.organization_id
        )

    def _get_service(self, service_id: str) -> Service:
        service = self._service_query().filter(Service.id == service_id).first()
        if not service:
            raise NotFoundError('Service', service_id)
        return service

    def list_services(self, active_only: bool = False, category: str = None) -> List[Dict]:
        query = self._service_query()
        if active_only:
            query = query.filter(Service.active == True)  # noqa: E712
        if category:
            query = query.filter(Service.category == category)
        return [s.to_dict() for s in query.order_by(Service.name).all()]

    def get_service(self, service_id: str) -> Optional[Dict]:
        service = self._service_query().filter(Service.id == service_id).first()
        return service.to_dict() if service else None

    def create_service(self, data: Dict) -> Dict:
        """Create a service; unless imported with one, its price history starts with the initial price."""
        require_valid(validate_required_fields(data, ['name']), field='name')
        price = float(data.get('price') or 0)
        service = Service(
            organization_id=self.organization_id,
            name=data['name'].strip(),
            category=data.get('category'),
            description=data.get('description'),
            price=price,
            cost=data.get('cost') or 0,
            estimated_hours=data.get('estimated_hours') or 0,
            active=data.get('active', True),
            price_history=list(data.get('price_history') or [price_history_entry(price)]),
        )
        self.session.add(service)
        self.session.flush()
        logger.info(f"Created service: {service.id}")
        return service.to_dict()

    def update_service(self, service_id: str, data: Dict) -> Optional[Dict]:
        """Update a service, appending to its price history when the price changes."""
        service = self._service_query().filter(Service.id == service_id).first()
        if not service:
            return None

        for key in SERVICE_FIELDS:
            if key in data:
                setattr(service, key, data[key])
        if 'price' in data and data['price'] is not None:
            self._set_service_price(service, float(data['price']))

        service.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated service: {service_id}")
        return service.to_dict()

    def _set_service_price(self, service: Service, new_price: float):
        old_price = service.price or 0
        if new_price == old_price:
            return
        # Reassign so the JSON column is flagged dirty
        history = list(service.price_history or [])
        if not history:
            history.append(price_history_entry(old_price))
        history.append(price_history_entry(new_price))
        service.price_history = history
        service.price = new_price
        logger.info(f"Service {service.id} price changed {old_price} -> {new_price}")

    def delete_service(self, service_id: str) -> bool:
        service = self._service_query().filter(Service.id == service_id).first()
        if not service:
            return False
        self.session.delete(service)
        self.session.flush()
        logger.info(f"Deleted service: {service_id}")
        return True

    def get_price_history(self, service_id: str) -> List[Dict]:
        return list(self._get_service(service_id).price_history or [])

    # =========================================================================
    # PRICING
    # =========================================================================

    def set_price(self, item_type: str, item_id: str, price: float) -> Dict:
        """Apply a new sale price (e.g. from the simulator)."""
        price = round(float(price), 2)
        if price < 0:
            raise ValidationError("Preço não pode ser negativo", field='price')
        if item_type == PRODUCT:
            product = self._get_product(item_id)
            product.price = price
            product.updated_at = datetime.utcnow()
            self.session.flush()
            logger.info(f"Applied price {price} to product {item_id}")
            return product.to_dict()
        if item_type == SERVICE:
            service = self._get_service(item_id)
            self._set_service_price(service, price)
            service.updated_at = datetime.utcnow()
            self.session.flush()
            return service.to_dict()
        raise ValidationError(f"Tipo de item inválido: {item_type}", field='type')

    def snapshot(self, active_services_only: bool = True) -> CatalogSnapshot:
        """Current catalog as the pricing engine sees it."""
        products = [
            CatalogRef(p.id, p.name, PRODUCT, float(p.price or 0), int(p.stock or 0))
            for p in self._product_query().all()
        ]
        service_query = self._service_query()
        if active_services_only:
            service_query = service_query.filter(Service.active == True)  # noqa: E712
        services = [
            CatalogRef(s.id, s.name, SERVICE, float(s.price or 0))
            for s in service_query.all()
        ]
        return CatalogSnapshot(products=products, services=services)
