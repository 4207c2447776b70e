"""
Tests for analytics_service — the admin analytics pages.
"""

from datetime import date, timedelta

import pytest

from carhub.services import analytics_service

TODAY = date(2026, 3, 11)


class TestPercentage:
    @pytest.mark.parametrize(
        "part, whole, expected",
        [(1, 3, 33), (2, 3, 67), (1, 8, 13), (0, 5, 0), (5, 0, 0), (3, 3, 100)],
    )
    def test_rounds_half_up(self, part, whole, expected):
        assert analytics_service.percentage(part, whole) == expected


class TestServiceAnalytics:
    def test_counts_top_types_and_average(
        self, app, make_customer, make_vehicle, make_service, service_types
    ):
        oil, wash = service_types["oil"], service_types["wash"]
        vehicle = make_vehicle(make_customer())
        make_service(vehicle, items=[(oil, 1, "100")], scheduled_date=TODAY,
                     estimated_value="100.00")
        make_service(vehicle, items=[(oil, 1, "100"), (wash, 1, "50")],
                     scheduled_date=TODAY - timedelta(days=10),
                     status="completed", estimated_value="150.00", final_value="201.00")
        make_service(vehicle, items=[(wash, 1, "50")],
                     scheduled_date=TODAY - timedelta(days=60), estimated_value="0.00")
        make_service(vehicle, items=[(wash, 1, "50"), (wash, 1, "50")],
                     scheduled_date=TODAY, status="cancelled")

        result = analytics_service.get_service_analytics(today=TODAY)

        assert result["total"] == 4
        assert result["this_week"] == 2
        assert result["this_month"] == 3
        # Equal counts fall back to name order; the cancelled order is ignored.
        assert result["top_service_types"] == [
            {"service_type_id": wash.id, "service_type_name": "Car wash", "service_count": 2},
            {"service_type_id": oil.id, "service_type_name": "Oil change", "service_count": 2},
        ]
        # (100 + 201) / 2; zero-valued and cancelled-without-value orders ignored.
        assert result["average_value"] == "150.50"

    def test_empty(self, app):
        result = analytics_service.get_service_analytics(today=TODAY)
        assert result["total"] == 0
        assert result["top_service_types"] == []
        assert result["average_value"] == "0.00"


class TestCustomerAnalytics:
    def test_top_customers_by_order_count(
        self, app, make_customer, make_vehicle, make_service
    ):
        maria = make_customer(name="Maria")
        pedro = make_customer(name="Pedro")
        make_customer(name="Idle")
        for _ in range(2):
            make_service(make_vehicle(maria))
        make_service(make_vehicle(pedro))

        result = analytics_service.get_customer_analytics()

        assert result["total"] == 3
        assert result["new_this_week"] == 3
        assert [c["customer_name"] for c in result["top_customers"]] == ["Maria", "Pedro"]
        assert result["top_customers"][0]["service_count"] == 2


class TestVehicleAnalytics:
    def test_age_buckets(self):
        assert analytics_service.age_bucket(0) == "new"
        assert analytics_service.age_bucket(2) == "new"
        assert analytics_service.age_bucket(3) == "semi_new"
        assert analytics_service.age_bucket(10) == "used"
        assert analytics_service.age_bucket(11) == "old"

    def test_distributions(self, app, make_customer, make_vehicle):
        customer = make_customer()
        make_vehicle(customer, brand="Fiat", year=2025, fuel_type="flex")
        make_vehicle(customer, brand="Fiat", year=2018, fuel_type="flex")
        make_vehicle(customer, brand="VW", year=2000)

        result = analytics_service.get_vehicle_analytics(current_year=2026)

        assert result["total_vehicles"] == 3
        assert result["brand_distribution"][0] == {"brand": "Fiat", "count": 2, "percentage": 67}
        assert {"fuel_type": "Not informed", "count": 1, "percentage": 33} in result[
            "fuel_distribution"
        ]
        assert result["age_distribution"] == [
            {"range": "new", "count": 1, "percentage": 33},
            {"range": "semi_new", "count": 0, "percentage": 0},
            {"range": "used", "count": 1, "percentage": 33},
            {"range": "old", "count": 1, "percentage": 33},
        ]

    def test_empty_fleet(self, app):
        result = analytics_service.get_vehicle_analytics(current_year=2026)
        assert result["total_vehicles"] == 0
        assert all(row["percentage"] == 0 for row in result["age_distribution"])


class TestPaymentAnalytics:
    def test_methods_and_status_overview(
        self, app, make_customer, make_vehicle, make_service
    ):
        vehicle = make_vehicle(make_customer())
        make_service(vehicle, estimated_value="100.00", paid_pix="50.00", paid_card="50.00")
        make_service(vehicle, estimated_value="100.00", paid_pix="50.00")
        make_service(vehicle, estimated_value="100.00")

        result = analytics_service.get_payment_analytics()

        assert result["total_amount"] == "150.00"
        by_method = {row["method"]: row for row in result["methods"]}
        assert by_method["pix"] == {
            "method": "pix",
            "amount": "100.00",
            "count": 2,
            "value_percentage": 67,
            "count_percentage": 67,
        }
        assert by_method["cash"]["count"] == 0
        assert result["status_overview"] == [
            {"status": "paid", "count": 1, "percentage": 33},
            {"status": "partial", "count": 1, "percentage": 33},
            {"status": "pending", "count": 1, "percentage": 33},
        ]
