from models import Driver, DriverService, Service


JAKARTA = {"text": "Jl. Thamrin, Jakarta Pusat", "lat": -6.2088, "lon": 106.8456}
BANDUNG = {"text": "Jl. Asia Afrika, Bandung", "lat": -6.9175, "lon": 107.6191}

MITRA_ID = "mitra-1"
OTHER_MITRA_ID = "mitra-2"


def per_km_config_data(**overrides):
    data = {
        "service_type_alias": "Kurir Motor",
        "admin_fee": 2000,
        "pricing": {"strategy": "PER_KM", "rate_per_km": 5000},
        "coverage": {"max_distance_km": 200, "cities": ["Jakarta", "Bandung"]},
        "allowed_cargo": [
            {"cargo_id": "FRAGILE", "display_name": "Barang Pecah Belah", "handling_fee": 3000},
            {"cargo_id": "DOCS", "display_name": "Dokumen"},
        ],
        "available_facilities": [
            {"facility_id": "HELMET", "display_name": "Helm", "fee": 1000},
            {"facility_id": "COOLER", "display_name": "Cooler Box", "fee": 2500},
            {"facility_id": "BAG", "display_name": "Tas", "fee": 0},
        ],
        "advance_payment": {"enabled": True, "max_amount": 50000},
    }
    data.update(overrides)
    return data


def zone_config_data(**overrides):
    data = {
        "service_type_alias": "Ojek Zona",
        "admin_fee": 1500,
        "pricing": {
            "strategy": "ZONE_PAIR",
            "zones": [
                {"origin_zone": "MALANG_KOTA", "destination_zone": "KOTA_BATU", "price": 25000},
                {"origin_zone": "KAB_MALANG", "destination_zone": "MALANG_KOTA", "price": 18000},
            ],
        },
    }
    data.update(overrides)
    return data


def seed_service(db, config=None, mitra_id=MITRA_ID, is_active=True, name="Kurir Motor"):
    service = Service(
        mitra_id=mitra_id,
        name=name,
        is_active=is_active,
        config=config if config is not None else per_km_config_data(),
    )
    db.add(service)
    db.commit()
    return service


def seed_driver(db, service_ids=(), mitra_id=MITRA_ID, is_active=True, name="Budi"):
    driver = Driver(mitra_id=mitra_id, name=name, phone="081234567890", is_active=is_active)
    db.add(driver)
    db.flush()
    for service_id in service_ids:
        db.add(DriverService(driver_id=driver.id, service_id=service_id))
    db.commit()
    return driver
