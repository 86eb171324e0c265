from kitchenpos import create_app

app = create_app()
