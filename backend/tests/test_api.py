"""
HTTP API tests.

Verifies:
- Role-guarded endpoints refuse missing, unknown and wrong-role callers
- Domain errors map onto their HTTP status codes
- A customer order can be taken from cart to delivery over the API
"""

from conftest import employee_headers


# =============================================================================
# HEALTH
# =============================================================================

class TestHealth:

    def test_health(self, client, db_session):
        response = client.get('/api/health')

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'healthy'
        assert data['checks']['database']['details']['placed_orders'] == 0


# =============================================================================
# ROLE GUARD
# =============================================================================

class TestRoleGuard:

    def test_missing_header(self, client, db_session):
        response = client.get('/api/finance/placed-orders')

        assert response.status_code == 403
        assert response.get_json()['details']['header'] == 'X-Employee-Id'

    def test_unknown_employee(self, client, db_session):
        response = client.get('/api/finance/placed-orders', headers={'X-Employee-Id': '9999'})
        assert response.status_code == 403

    def test_non_numeric_header(self, client, db_session):
        response = client.get('/api/finance/placed-orders', headers={'X-Employee-Id': 'abc'})
        assert response.status_code == 403

    def test_wrong_role(self, client, driver):
        response = client.get('/api/finance/placed-orders', headers=employee_headers(driver))

        assert response.status_code == 403
        assert response.get_json()['details']['roles'] == ['Finance Manager']

    def test_inactive_employee(self, client, make_employee):
        manager = make_employee('Finance Manager', status='inactive')
        response = client.get('/api/finance/placed-orders', headers=employee_headers(manager))
        assert response.status_code == 403

    def test_right_role(self, client, finance_manager):
        response = client.get('/api/finance/placed-orders', headers=employee_headers(finance_manager))

        assert response.status_code == 200
        assert response.get_json() == {'orders': []}


# =============================================================================
# ERROR MAPPING
# =============================================================================

class TestErrorMapping:

    def test_invalid_payment_code_is_400(self, client, finance_manager):
        response = client.put(
            '/api/procurement/requests/1/pay',
            json={'payment_code': 'short'},
            headers=employee_headers(finance_manager),
        )

        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_PAYMENT_CODE'

    def test_unknown_request_is_404(self, client, db_session):
        response = client.put('/api/procurement/requests/404/supply')
        assert response.status_code == 404

    def test_illegal_transition_is_409(self, client, inventory_manager):
        created = client.post(
            '/api/procurement/requests',
            json={'material_name': 'Oak Timber', 'quantity': 10, 'unit': 'planks', 'supplier': 'Timber Co'},
            headers=employee_headers(inventory_manager),
        )
        assert created.status_code == 201
        request_id = created.get_json()['request']['id']

        response = client.put(f'/api/procurement/requests/{request_id}/supply')

        assert response.status_code == 409
        assert response.get_json()['code'] == 'INVALID_STATE'

    def test_decimal_quantity_is_400(self, client, inventory_manager):
        response = client.post(
            '/api/procurement/requests',
            json={'material_name': 'Oak Timber', 'quantity': 1.5, 'unit': 'planks', 'supplier': 'Timber Co'},
            headers=employee_headers(inventory_manager),
        )
        assert response.status_code == 400


# =============================================================================
# END-TO-END ORDER
# =============================================================================

class TestOrderFlow:

    def test_cart_to_delivery(self, client, customer, inventory_manager, finance_manager,
                              dispatch_manager, driver):
        created = client.post(
            '/api/inventory/products',
            json={'title': 'Oak Panel Door', 'price_cents': 1_250_000, 'quantity': 3},
            headers=employee_headers(inventory_manager),
        )
        assert created.status_code == 201
        product_id = created.get_json()['product']['id']

        response = client.post(
            '/api/customer/cart/add',
            json={'customer_id': customer.id, 'product_id': product_id, 'quantity': 2},
        )
        assert response.status_code == 200

        response = client.post(
            '/api/customer/checkout',
            json={'customer_id': customer.id, 'payment_code': 'MPE1JF2CTD', 'amount_paid_cents': 2_500_000},
        )
        assert response.status_code == 201
        order = response.get_json()['order']
        assert order['total_cents'] == 2_500_000

        # Release is refused until finance confirms
        response = client.put(f"/api/inventory/release/{order['id']}", headers=employee_headers(inventory_manager))
        assert response.status_code == 409

        response = client.put(
            f"/api/finance/confirm-payment/{order['payment_id']}",
            headers=employee_headers(finance_manager),
        )
        assert response.status_code == 200

        response = client.put(f"/api/inventory/release/{order['id']}", headers=employee_headers(inventory_manager))
        assert response.status_code == 200

        response = client.put(
            f"/api/dispatch/assign/{order['id']}",
            json={'driver_id': driver.id},
            headers=employee_headers(dispatch_manager),
        )
        assert response.status_code == 200

        assigned = client.get('/api/driver/assigned', headers=employee_headers(driver)).get_json()
        dispatch_id = assigned['dispatches'][0]['id']

        response = client.put(f'/api/driver/delivered/{dispatch_id}', headers=employee_headers(driver))
        assert response.status_code == 200

        orders = client.get(f'/api/customer/orders/{customer.id}').get_json()['orders']
        assert orders[0]['status'] == 'delivered'

        receipt = client.get(f"/api/customer/receipt/{order['id']}").get_json()['receipt']
        assert receipt['total_cents'] == 2_500_000


# =============================================================================
# TOOLS
# =============================================================================

class TestToolEndpoints:

    def test_technician_sees_and_returns_only_own_requests(self, client, inventory_manager, technician,
                                                           make_employee):
        other = make_employee('Technician')
        created = client.post(
            '/api/tools/',
            json={'name': 'Cordless Drill', 'unit': 'pcs', 'quantity_available': 4},
            headers=employee_headers(inventory_manager),
        )
        assert created.status_code == 201
        tool_id = created.get_json()['tool']['id']

        response = client.post(
            '/api/tools/requests',
            json={'tools': [{'tool_id': tool_id, 'quantity_requested': 2}]},
            headers=employee_headers(technician),
        )
        assert response.status_code == 201
        request_id = response.get_json()['request']['id']

        response = client.put(
            f'/api/tools/requests/{request_id}/approve',
            json={'tools': [{'tool_id': tool_id, 'quantity_approved': 2}]},
            headers=employee_headers(inventory_manager),
        )
        assert response.status_code == 200

        assert client.get('/api/tools/requests', headers=employee_headers(other)).get_json() == {'requests': []}

        response = client.put(
            f'/api/tools/requests/{request_id}/return',
            json={'tools': [{'tool_id': tool_id, 'quantity_returned': 2}]},
            headers=employee_headers(other),
        )
        assert response.status_code == 403

        response = client.put(
            f'/api/tools/requests/{request_id}/return',
            json={'tools': [{'tool_id': tool_id, 'quantity_returned': 2}]},
            headers=employee_headers(technician),
        )
        assert response.status_code == 200
        assert response.get_json()['request']['status'] == 'Returned'
