from __future__ import annotations

import pytest

from hotel_availability.hotels import HotelDetails, build_hotel_summaries, build_hotel_summary


def test_summary_uses_lowest_room_fare():
    hotel = {
        "HotelCode": 1001,
        "Currency": "INR",
        "Rooms": [
            {
                "Name": ["Deluxe Room", "King Bed"],
                "BookingCode": "BK-1",
                "Inclusion": "Breakfast",
                "MealType": "BreakFast",
                "TotalFare": "5400.50",
                "TotalTax": 400,
                "IsRefundable": True,
            },
            {"Name": ["Standard Room"], "BookingCode": "BK-2", "TotalFare": 4200},
        ],
    }

    summary = build_hotel_summary(hotel)

    assert summary is not None
    assert summary.hotel_code == "1001"
    assert summary.price == 4200.0
    data = summary.to_dict()
    assert data["currency"] == "INR"
    assert data["rooms"][0] == {
        "name": "Deluxe Room, King Bed",
        "bookingCode": "BK-1",
        "inclusion": "Breakfast",
        "mealType": "BreakFast",
        "totalFare": 5400.5,
        "totalTax": 400.0,
        "refundable": True,
    }


def test_summary_falls_back_to_price_block():
    summary = build_hotel_summary(
        {"HotelCode": "2", "Price": {"OfferedPrice": 99.5, "PublishedPrice": 120, "CurrencyCode": "USD"}}
    )
    assert summary is not None
    assert summary.price == 99.5
    assert summary.currency == "USD"
    assert summary.rooms == []

    published = build_hotel_summary({"HotelCode": "3", "Price": {"PublishedPrice": "120"}})
    assert published is not None
    assert published.price == 120.0


def test_results_without_hotel_code_are_skipped():
    summaries = build_hotel_summaries([{"HotelCode": "1"}, {"Rooms": []}, "garbage", {"HotelCode": ""}])
    assert [summary.hotel_code for summary in summaries] == ["1"]


def test_hotel_details_accepts_both_naming_styles():
    snake = HotelDetails.from_mapping(
        {"hotel_code": "1", "hotel_name": "Sea View", "city_name": "Mumbai", "star_rating": "4"}
    )
    pascal = HotelDetails.from_mapping(
        {
            "HotelCode": 2,
            "HotelName": "Lake Inn",
            "CityName": "Pune",
            "CountryCode": "IN",
            "HotelRating": 3,
            "Latitude": "18.5",
            "Longitude": "bad",
        }
    )

    assert snake.star_rating == 4.0
    assert pascal.hotel_code == "2"
    assert pascal.country_code == "IN"
    assert pascal.latitude == 18.5
    assert pascal.longitude is None


def test_hotel_details_requires_code_name_and_city():
    with pytest.raises(ValueError, match="city_name"):
        HotelDetails.from_mapping({"hotel_code": "1", "hotel_name": "Sea View"})


def test_summary_carries_descriptive_hotel_fields():
    hotel = {
        "HotelCode": "1001",
        "HotelName": "Sea View",
        "HotelRating": "4",
        "HotelAddress": "Marine Drive",
        "CityName": "Mumbai",
        "CountryName": "India",
        "Latitude": "18.94",
        "Longitude": 72.82,
        "HotelFacilities": ["Pool", "Wifi"],
        "HotelPicture": "https://img.example.test/1001.jpg",
        "Rooms": [
            {
                "Name": ["Deluxe"],
                "TotalFare": 100,
                "CancelPolicies": [{"FromDate": "2030-04-28", "ChargeType": "Percentage", "CancellationCharge": 100}],
            }
        ],
    }

    data = build_hotel_summary(hotel).to_dict()

    assert data["hotelName"] == "Sea View"
    assert data["rating"] == 4.0
    assert data["address"] == "Marine Drive"
    assert data["city"] == "Mumbai"
    assert data["country"] == "India"
    assert data["latitude"] == 18.94
    assert data["longitude"] == 72.82
    assert data["amenities"] == ["Pool", "Wifi"]
    assert data["images"] == ["https://img.example.test/1001.jpg"]
    assert data["cancellationPolicies"] == [
        {"FromDate": "2030-04-28", "ChargeType": "Percentage", "CancellationCharge": 100}
    ]


def test_summary_lists_default_to_empty():
    data = build_hotel_summary({"HotelCode": "7"}).to_dict()
    assert data["hotelName"] is None
    assert data["amenities"] == []
    assert data["images"] == []
    assert data["cancellationPolicies"] == []


def test_stored_details_fill_missing_fields_only():
    details = {
        "1": HotelDetails(
            hotel_code="1",
            hotel_name="Stored Name",
            city_name="Goa",
            country_name="India",
            address="Beach Road",
            star_rating=3.0,
            latitude=15.5,
            longitude=73.8,
        )
    }
    results = [{"HotelCode": "1", "HotelName": "Live Name"}, {"HotelCode": "2"}]

    summaries = build_hotel_summaries(results, details)

    first, second = summaries
    assert first.hotel_name == "Live Name"
    assert first.address == "Beach Road"
    assert first.city == "Goa"
    assert first.country == "India"
    assert first.rating == 3.0
    assert (first.latitude, first.longitude) == (15.5, 73.8)
    assert second.hotel_name is None
