from decimal import Decimal

import pytest

from backoffice_api.services.statutory import calculate_statutory


def D(x):
    return Decimal(x)


def test_mid_salary_sample():
    r = calculate_statutory(5000)
    assert r.epf_employee == D("550.00")
    assert r.epf_employer == D("600.00")
    # 0.5% of 5000 = 25.00 -> capped
    assert r.socso_employee == D("19.75")
    # 1.75% of 5000 = 87.50 -> capped
    assert r.socso_employer == D("69.15")
    assert r.eis_employee == D("8.00")
    assert r.eis_employer == D("8.00")
    assert r.pcb == D("250.00")
    assert r.total_deductions == D("827.75")
    assert r.net_pay == D("4172.25")
    assert r.gross_pay == D("5000.00")


def test_below_caps():
    r = calculate_statutory(3000)
    assert r.socso_employee == D("15.00")
    assert r.socso_employer == D("52.50")
    assert r.eis_employee == D("6.00")
    assert r.eis_employer == D("6.00")
    assert r.net_pay == D("2499.00")
    assert r.total_employer_contributions == D("360.00") + D("52.50") + D("6.00")


def test_rounds_half_up_to_the_cent():
    # 0.5% of 1001 = 5.005 ; 0.2% of 1002.5 = 2.005
    assert calculate_statutory(1001).socso_employee == D("5.01")
    assert calculate_statutory("1002.50").eis_employee == D("2.01")


@pytest.mark.parametrize("salary", [0, "0.01", 999.99, 1234.56, 3950, 4000, 10000, 123456.78])
def test_net_pay_is_basic_minus_employee_deductions(salary):
    r = calculate_statutory(salary)
    expected = r.basic_salary - (r.epf_employee + r.socso_employee + r.eis_employee + r.pcb)
    assert r.net_pay == expected
    assert r.total_deductions == r.epf_employee + r.socso_employee + r.eis_employee + r.pcb
    assert r.net_pay.as_tuple().exponent == -2


@pytest.mark.parametrize("salary", [3950, 4000, 50000, 10 ** 9])
def test_caps_never_exceeded(salary):
    r = calculate_statutory(salary)
    assert r.socso_employee <= D("19.75")
    assert r.socso_employer <= D("69.15")
    assert r.eis_employee <= D("8.00")
    assert r.eis_employer <= D("8.00")


@pytest.mark.parametrize("bad", [None, "", -100, "-0.01", "abc", float("nan")])
def test_missing_or_negative_salary_counts_as_zero(bad):
    r = calculate_statutory(bad)
    assert r.basic_salary == D("0")
    assert r.total_deductions == D("0")
    assert r.net_pay == D("0")
    assert r.epf_employer == D("0")


def test_pure_and_repeatable():
    assert calculate_statutory(4321.09) == calculate_statutory(Decimal("4321.09"))
    assert calculate_statutory(4321.09).as_dict()["net_pay"] == calculate_statutory(4321.09).net_pay
