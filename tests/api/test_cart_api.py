"""Tests for cart API endpoints.

Tests the cart flow including:
- Actor identification
- Adding, merging and re-pricing lines
- Shipping selection and totals
- Guest cart merge on login
"""

from fastapi import status


# ============================================================================
# Test: Actor Identification
# ============================================================================


class TestActorIdentification:
    """Tests for the identity headers."""

    def test_missing_actor_rejected(self, client):
        response = client.get("/cart")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["error_code"] == "ACTOR_REQUIRED"
        assert "request_id" in data

    def test_empty_cart(self, client, guest_headers):
        response = client.get("/cart", headers=guest_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["actor_key"] == "guest:guest-abc"
        assert data["items"] == []
        assert data["item_count"] == 0
        assert data["selected_shipping_id"] == "evri-48"

    def test_user_header_preferred(self, client):
        response = client.get(
            "/cart",
            headers={"X-User-ID": "user-42", "X-Guest-Session": "guest-abc"},
        )
        assert response.json()["actor_key"] == "user:user-42"

    def test_request_id_echoed(self, client, guest_headers):
        response = client.get(
            "/cart", headers={**guest_headers, "X-Request-ID": "req-123"}
        )
        assert response.headers["X-Request-ID"] == "req-123"


# ============================================================================
# Test: Cart Lines
# ============================================================================


class TestCartItems:
    """Tests for adding, updating and removing lines."""

    def test_add_item_tier_priced(self, client, guest_headers, cart_store):
        response = client.post(
            "/cart/items",
            json={"product_id": "kraft-pouch", "quantity": 75},
            headers=guest_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["id"] == "kraft-pouch-no-variant"
        assert data["price_per_unit"] == "1.791"
        assert data["total_price"] == "134.33"
        assert data["pricing_rule"] == "tier"
        assert "guest:guest-abc" in cart_store

    def test_add_by_slug_and_variant_sku(self, client, guest_headers):
        response = client.post(
            "/cart/items",
            json={
                "product_id": "kraft-stand-up-pouch",
                "variant_id": "KP-BLK",
                "quantity": 2,
            },
            headers=guest_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["id"] == "kraft-pouch-KP-BLK"
        assert data["variant_id"] == "kp-black"
        assert data["price_per_unit"] == "2.19"

    def test_add_same_item_merges(self, client, guest_headers):
        client.post(
            "/cart/items",
            json={"product_id": "kraft-pouch", "quantity": 10},
            headers=guest_headers,
        )
        client.post(
            "/cart/items",
            json={"product_id": "kraft-pouch", "quantity": 45},
            headers=guest_headers,
        )

        data = client.get("/cart", headers=guest_headers).json()

        assert len(data["items"]) == 1
        assert data["items"][0]["quantity"] == 55
        assert data["items"][0]["total_price"] == "98.51"
        assert data["item_count"] == 55

    def test_add_pack_sized_variant(self, client, guest_headers):
        response = client.post(
            "/cart/items",
            json={
                "product_id": "clear-pouch",
                "variant_id": "cp-clear",
                "quantity": 50,
                "quantity_option_price": "2.12",
            },
            headers=guest_headers,
        )

        data = response.json()
        assert data["price_per_unit"] == "2.12"
        assert data["quantity_option_price"] == "2.12"
        assert data["pricing_rule"] == "quantity_option"

    def test_unknown_product(self, client, guest_headers):
        response = client.post(
            "/cart/items",
            json={"product_id": "nope", "quantity": 1},
            headers=guest_headers,
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error_code"] == "PRODUCT_NOT_FOUND"

    def test_unknown_variant(self, client, guest_headers):
        response = client.post(
            "/cart/items",
            json={"product_id": "kraft-pouch", "variant_id": "nope", "quantity": 1},
            headers=guest_headers,
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error_code"] == "VARIANT_NOT_FOUND"

    def test_invalid_quantity(self, client, guest_headers):
        response = client.post(
            "/cart/items",
            json={"product_id": "kraft-pouch", "quantity": 0},
            headers=guest_headers,
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "INVALID_QUANTITY"
        assert client.get("/cart", headers=guest_headers).json()["items"] == []

    def test_negative_pack_price(self, client, guest_headers):
        response = client.post(
            "/cart/items",
            json={"product_id": "kraft-pouch", "quantity": 1, "quantity_option_price": "-1"},
            headers=guest_headers,
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "INVALID_PRICE"

    def test_malformed_body(self, client, guest_headers):
        response = client.post(
            "/cart/items",
            json={"product_id": "kraft-pouch", "quantity": "lots"},
            headers=guest_headers,
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_update_quantity_reprices(self, client, guest_headers):
        client.post(
            "/cart/items",
            json={"product_id": "kraft-pouch", "quantity": 10},
            headers=guest_headers,
        )

        response = client.patch(
            "/cart/items/kraft-pouch-no-variant",
            json={"quantity": 100},
            headers=guest_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        item = response.json()["items"][0]
        assert item["price_per_unit"] == "1.592"
        assert item["total_price"] == "159.20"
        assert item["pricing_rule"] == "tier"

    def test_update_to_zero_removes(self, client, guest_headers, cart_store):
        client.post(
            "/cart/items",
            json={"product_id": "kraft-pouch", "quantity": 10},
            headers=guest_headers,
        )

        response = client.patch(
            "/cart/items/kraft-pouch-no-variant",
            json={"quantity": 0},
            headers=guest_headers,
        )

        assert response.json()["items"] == []
        assert "guest:guest-abc" not in cart_store

    def test_remove_unknown_line_is_noop(self, client, guest_headers):
        client.post(
            "/cart/items",
            json={"product_id": "mailer-box", "quantity": 1},
            headers=guest_headers,
        )

        response = client.delete("/cart/items/missing", headers=guest_headers)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()["items"]) == 1

    def test_clear_cart(self, client, guest_headers):
        client.post(
            "/cart/items",
            json={"product_id": "mailer-box", "quantity": 1},
            headers=guest_headers,
        )

        response = client.delete("/cart", headers=guest_headers)

        assert response.json()["items"] == []


# ============================================================================
# Test: Shipping and Totals
# ============================================================================


class TestCartTotals:
    """Tests for shipping selection and summaries."""

    def test_summary_without_vat(self, client, guest_headers):
        client.post(
            "/cart/items",
            json={"product_id": "mailer-box", "quantity": 2},
            headers=guest_headers,
        )

        data = client.get("/cart/summary", headers=guest_headers).json()

        assert data["subtotal"] == "20.00"
        assert data["discount"] == "2.00"
        assert data["shipping"] == "0.00"
        assert data["total"] == "18.00"
        assert data["shipping_method"] == "evri-48"

    def test_select_shipping(self, client, guest_headers):
        client.post(
            "/cart/items",
            json={"product_id": "mailer-box", "quantity": 2},
            headers=guest_headers,
        )

        response = client.put(
            "/cart/shipping",
            json={"shipping_id": "dhl-next-day"},
            headers=guest_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["shipping"] == "5.99"
        assert data["total"] == "23.99"
        assert data["items"][0]["total_price"] == "20.00"

    def test_unknown_shipping_method(self, client, guest_headers):
        response = client.put(
            "/cart/shipping",
            json={"shipping_id": "pigeon"},
            headers=guest_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["error_code"] == "UNKNOWN_SHIPPING_METHOD"
        assert "dhl-next-day" in data["details"]["available"]

    def test_summary_with_vat(self, client, guest_headers):
        client.post(
            "/cart/items",
            json={"product_id": "mailer-box", "quantity": 2},
            headers=guest_headers,
        )
        client.put(
            "/cart/shipping",
            json={"shipping_id": "dhl-next-day"},
            headers=guest_headers,
        )

        data = client.get("/cart/summary/with-vat", headers=guest_headers).json()

        assert data["subtotal"] == "20.00"
        assert data["discount"] == "2.00"
        assert data["shipping"] == "5.99"
        assert data["vat_amount"] == "4.80"
        assert data["total"] == "28.79"


# ============================================================================
# Test: Guest Merge
# ============================================================================


class TestMergeGuestCart:
    """Tests for POST /cart/merge-guest."""

    def test_merge_on_login(
        self, client, guest_headers, user_headers, cart_store, cart_registry
    ):
        client.post(
            "/cart/items",
            json={"product_id": "kraft-pouch", "quantity": 30},
            headers=guest_headers,
        )
        client.post(
            "/cart/items",
            json={"product_id": "kraft-pouch", "quantity": 30},
            headers=user_headers,
        )

        response = client.post(
            "/cart/merge-guest",
            json={"guest_session_id": "guest-abc"},
            headers=user_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["merged_lines"] == 1
        item = data["cart"]["items"][0]
        assert item["quantity"] == 60
        assert item["price_per_unit"] == "1.791"
        assert "guest:guest-abc" not in cart_store
        assert cart_registry.peek("guest:guest-abc") is None
        assert client.get("/cart", headers=guest_headers).json()["items"] == []

    def test_merge_requires_user(self, client, guest_headers):
        response = client.post(
            "/cart/merge-guest",
            json={"guest_session_id": "guest-other"},
            headers=guest_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "USER_REQUIRED"
