"""Demo dealership data for an empty database.

Goes through the lifecycle managers, so seeded sales move their vehicles the
same way live ones do.
"""

from __future__ import annotations

import logging
from typing import Any

from dealer_mcp.data.store import DealerStore

logger = logging.getLogger(__name__)

DEMO_VEHICLES: list[dict[str, Any]] = [
    {
        "vin": "4T1B11HK5RU000001", "make": "Toyota", "model": "Camry", "year": 2024,
        "color": "Celestial Silver", "engine_type": "2.5L I4", "transmission": "Automatic",
        "fuel_type": "Gasoline", "mileage": 12, "purchase_price": "24000.00",
        "selling_price": "28500.00", "msrp": "29500.00", "condition": "NEW",
        "purchase_date": "2024-11-04", "location": "Main Lot",
    },
    {
        "vin": "2HGFE2F59PH000002", "make": "Honda", "model": "Civic", "year": 2023,
        "color": "Sonic Gray", "engine_type": "2.0L I4", "transmission": "CVT",
        "fuel_type": "Gasoline", "mileage": 8, "purchase_price": "21000.00",
        "selling_price": "24900.00", "msrp": "25450.00", "condition": "NEW",
        "purchase_date": "2024-10-21", "location": "Main Lot",
    },
    {
        "vin": "1FTFW1E85NF000003", "make": "Ford", "model": "F-150", "year": 2022,
        "color": "Oxford White", "engine_type": "3.5L V6 EcoBoost", "transmission": "Automatic",
        "fuel_type": "Gasoline", "mileage": 21450, "purchase_price": "38000.00",
        "selling_price": "44500.00", "condition": "USED",
        "purchase_date": "2024-09-12", "location": "Truck Row",
    },
    {
        "vin": "5YJ3E1EA7RF000004", "make": "Tesla", "model": "Model 3", "year": 2024,
        "color": "Pearl White", "engine_type": "Dual Motor", "transmission": "Single-Speed",
        "fuel_type": "Electric", "mileage": 40, "purchase_price": "36000.00",
        "selling_price": "41990.00", "msrp": "42490.00", "condition": "NEW",
        "purchase_date": "2024-12-02", "location": "Showroom",
    },
    {
        "vin": "2GNAXUEV1M6000005", "make": "Chevrolet", "model": "Equinox", "year": 2021,
        "color": "Mosaic Black", "engine_type": "1.5L Turbo I4", "transmission": "Automatic",
        "fuel_type": "Gasoline", "mileage": 33870, "purchase_price": "19500.00",
        "selling_price": "23900.00", "condition": "CERTIFIED_PRE_OWNED",
        "purchase_date": "2024-08-30", "location": "Main Lot",
    },
    {
        "vin": "5UXCR6C05P9000006", "make": "BMW", "model": "X5", "year": 2023,
        "color": "Carbon Black", "engine_type": "3.0L I6 Turbo", "transmission": "Automatic",
        "fuel_type": "Gasoline", "mileage": 5210, "purchase_price": "55000.00",
        "selling_price": "64900.00", "msrp": "67800.00", "condition": "USED",
        "purchase_date": "2024-11-18", "location": "Showroom",
    },
    {
        "vin": "2T3P1RFV8NC000007", "make": "Toyota", "model": "RAV4", "year": 2022,
        "color": "Blueprint", "engine_type": "2.5L I4", "transmission": "Automatic",
        "fuel_type": "Hybrid", "mileage": 27300, "purchase_price": "25500.00",
        "selling_price": "29900.00", "condition": "USED",
        "purchase_date": "2024-10-02", "location": "Main Lot",
    },
    {
        "vin": "4S4BTANC3L3000008", "make": "Subaru", "model": "Outback", "year": 2020,
        "color": "Autumn Green", "engine_type": "2.5L H4", "transmission": "CVT",
        "fuel_type": "Gasoline", "mileage": 48120, "purchase_price": "17000.00",
        "selling_price": "21500.00", "condition": "USED", "status": "MAINTENANCE",
        "purchase_date": "2024-07-15", "location": "Service Bay",
        "description": "Awaiting brake service before listing.",
    },
]

DEMO_CUSTOMERS: list[dict[str, Any]] = [
    {
        "first_name": "Alice", "last_name": "Johnson", "email": "alice.johnson@example.com",
        "phone": "+15125550101", "city": "Austin", "state": "TX", "zip_code": "78701",
        "country": "USA", "credit_score": 720, "preferred_contact_method": "EMAIL",
    },
    {
        "first_name": "Brian", "last_name": "Lee", "email": "brian.lee@example.com",
        "phone": "4155550102", "city": "San Francisco", "state": "CA", "zip_code": "94105",
        "country": "USA", "credit_score": 680, "preferred_contact_method": "SMS",
    },
    {
        "first_name": "Carla", "last_name": "Gomez", "email": "carla@gomezlogistics.example.com",
        "phone": "+12145550103", "city": "Dallas", "state": "TX", "zip_code": "75201",
        "country": "USA", "credit_score": 760, "customer_type": "BUSINESS",
        "company_name": "Gomez Logistics", "preferred_contact_method": "PHONE",
    },
    {
        "first_name": "Dan", "last_name": "Patel", "email": "dan.patel@example.com",
        "city": "Miami", "state": "FL", "zip_code": "33101", "country": "USA",
        "is_active": False,
    },
]


def seed_demo_data(store: DealerStore) -> dict[str, int]:
    """Populate ``store`` with demo inventory, customers and a few sales."""
    from dealer_mcp.lifecycle.customers import CustomerManager
    from dealer_mcp.lifecycle.sales import SaleLifecycleManager
    from dealer_mcp.lifecycle.vehicles import VehicleLifecycleManager

    vehicles = VehicleLifecycleManager(store)
    customers = CustomerManager(store)
    sales = SaleLifecycleManager(store, vehicles)

    with store.transaction():
        vins = {v["vin"]: vehicles.create_vehicle(v).id for v in DEMO_VEHICLES}
        emails = {c["email"]: customers.create_customer(c).id for c in DEMO_CUSTOMERS}

        tesla = sales.create_sale({
            "vehicle_id": vins["5YJ3E1EA7RF000004"],
            "customer_id": emails["alice.johnson@example.com"],
            "sale_date": "2025-01-15",
            "sale_price": "41000.00",
            "down_payment": "8000.00",
            "financing_amount": "33000.00",
            "interest_rate": "5.9",
            "loan_term_months": 60,
            "payment_method": "FINANCING",
            "salesperson_name": "Sam Rivera",
            "salesperson_email": "sam.rivera@dealer.example.com",
            "commission_rate": "2.5",
            "warranty_months": 48,
        })
        sales.approve_sale(tesla.id)
        sales.complete_sale(tesla.id)

        truck = sales.create_sale({
            "vehicle_id": vins["1FTFW1E85NF000003"],
            "customer_id": emails["carla@gomezlogistics.example.com"],
            "sale_date": "2025-02-10",
            "sale_price": "43500.00",
            "trade_in_value": "6000.00",
            "payment_method": "CASH",
            "salesperson_name": "Jordan Kim",
            "salesperson_email": "jordan.kim@dealer.example.com",
            "commission_rate": "3",
            "extended_warranty": True,
            "extended_warranty_cost": "1800.00",
        })
        sales.approve_sale(truck.id)
        sales.complete_sale(truck.id)

        sales.create_sale({
            "vehicle_id": vins["2HGFE2F59PH000002"],
            "customer_id": emails["brian.lee@example.com"],
            "sale_date": "2025-03-03",
            "sale_price": "24500.00",
            "payment_method": "LEASE",
            "salesperson_name": "Sam Rivera",
            "salesperson_email": "sam.rivera@dealer.example.com",
            "commission_rate": "2",
        })

    summary = {"vehicles": len(vins), "customers": len(emails), "sales": 3}
    logger.info("Seeded demo data: %s", summary)
    return summary
