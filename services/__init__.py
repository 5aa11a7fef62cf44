# Business logic, kept free of HTTP concerns
