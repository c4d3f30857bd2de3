# Checkout services
