import requests
import json
import sys

BASE_URL = "http://localhost:8000/api/v1"

def print_response(name, response):
    print(f"--- {name} ---")
    print(f"Status: {response.status_code}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)
    print("\n")

def run_verification(token: str):
    headers = {"Authorization": f"Bearer {token}"}

    # 1. Fill the cart (book ids 1 and 2 exist after seed_data.py)
    print("1. Adding books to cart...")
    resp = requests.post(f"{BASE_URL}/cart/items", headers=headers, json={"bookId": 1, "quantity": 2})
    print_response("Add Book 1", resp)
    resp = requests.post(f"{BASE_URL}/cart/items", headers=headers, json={"bookId": 2, "quantity": 1})
    print_response("Add Book 2", resp)

    # 2. Shipping
    print("2. Setting shipping information...")
    resp = requests.post(f"{BASE_URL}/checkout/shipping", headers=headers, json={
        "address_line1": "1 Rue des Livres",
        "city": "Montreal",
        "province": "QC",
        "postal_code": "H2X 1Y4",
        "country": "Canada",
        "is_default": True
    })
    print_response("Shipping", resp)
    if resp.status_code != 200:
        print("Shipping failed, aborting.")
        return
    address_id = resp.json()["shippingAddressId"]

    # 3. Payment (Expected Failure first)
    print("3. Paying with an unsupported method (Expected Failure)...")
    resp = requests.post(f"{BASE_URL}/checkout/payment", headers=headers, json={"paymentMethod": "Bitcoin"})
    print_response("Payment (Bitcoin)", resp)

    resp = requests.post(f"{BASE_URL}/checkout/payment", headers=headers, json={
        "paymentMethod": "CreditCard",
        "shippingAddressId": address_id
    })
    print_response("Payment", resp)
    if resp.status_code != 200:
        print("Payment failed, aborting.")
        return
    order_id = resp.json()["orderId"]

    # 4. Confirm
    print("4. Confirming order...")
    resp = requests.post(f"{BASE_URL}/checkout/confirm", headers=headers, json={"orderId": order_id})
    print_response("Confirm", resp)

    # 5. Session + order detail
    print("5. Reading session and order...")
    print_response("Session", requests.get(f"{BASE_URL}/checkout/session", headers=headers))
    print_response("Order", requests.get(f"{BASE_URL}/orders/{order_id}", headers=headers))

if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: python verify_api.py <bearer-token>")
        sys.exit(1)
    run_verification(sys.argv[1])
